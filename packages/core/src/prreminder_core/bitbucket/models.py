"""Bitbucket Server data models.

Only the fields the reminder reads are kept. The ``from_api`` constructors
accept the JSON objects of REST API 1.0 and tolerate missing optional keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field

UNAPPROVED = "UNAPPROVED"
APPROVED = "APPROVED"
NEEDS_WORK = "NEEDS_WORK"


@dataclass(frozen=True)
class Project:
    id: int
    key: str
    name: str

    @classmethod
    def from_api(cls, data: dict) -> Project:
        return cls(id=data.get("id", 0), key=data["key"], name=data.get("name", ""))


@dataclass(frozen=True)
class Repository:
    slug: str
    name: str
    project: Project

    @classmethod
    def from_api(cls, data: dict) -> Repository:
        return cls(
            slug=data["slug"],
            name=data.get("name", ""),
            project=Project.from_api(data["project"]),
        )


@dataclass(frozen=True)
class User:
    name: str
    slug: str = ""
    display_name: str = ""

    @classmethod
    def from_api(cls, data: dict) -> User:
        return cls(
            name=data.get("name", ""),
            slug=data.get("slug", ""),
            display_name=data.get("displayName", ""),
        )


@dataclass(frozen=True)
class Participant:
    """A pull request participant; ``status`` is passed through from the server as-is."""

    user: User
    status: str

    @classmethod
    def from_api(cls, data: dict) -> Participant:
        return cls(user=User.from_api(data.get("user") or {}), status=data.get("status", ""))


@dataclass(frozen=True)
class PullRequest:
    id: int
    title: str
    author: User
    created_date: int  # epoch milliseconds
    reviewers: list[Participant] = field(default_factory=list)
    links: dict[str, list[dict]] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> PullRequest:
        author = data.get("author") or {}
        return cls(
            id=data.get("id", 0),
            title=data.get("title", ""),
            author=User.from_api(author.get("user") or {}),
            created_date=data.get("createdDate", 0),
            reviewers=[Participant.from_api(r) for r in data.get("reviewers", [])],
            links=data.get("links") or {},
        )


@dataclass(frozen=True)
class PullRequestRecord:
    """One open pull request together with the repository it belongs to."""

    project_key: str
    project_name: str
    repository_key: str
    repository_name: str
    title: str
    reviewers: list[Participant] = field(default_factory=list)
    links: list[dict] = field(default_factory=list)  # the "self" relation
    created_date: int = 0
    author: str = ""

    @property
    def url(self) -> str:
        if not self.links:
            return ""
        return self.links[0].get("href", "")

    @classmethod
    def from_pull_request(cls, repository: Repository, pr: PullRequest) -> PullRequestRecord:
        return cls(
            project_key=repository.project.key,
            project_name=repository.project.name,
            repository_key=repository.slug,
            repository_name=repository.name,
            title=pr.title,
            reviewers=list(pr.reviewers),
            links=list(pr.links.get("self", [])),
            created_date=pr.created_date,
            author=pr.author.name,
        )
