"""Reminder pipeline: projects → repositories → pull requests → Slack digest.

Each stage runs once, sequentially, and consumes the previous stage's
output. Any FetchError or DeliveryError aborts the run; nothing is retried
and no partial digest is sent.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from slack_sdk.models.blocks import Block

from prreminder_core.bitbucket.client import BitbucketClient
from prreminder_core.bitbucket.models import Project, PullRequestRecord, Repository
from prreminder_core.config import Config
from prreminder_core.slack.digest import publish_digest, render_digest

logger = logging.getLogger(__name__)


@dataclass
class ReminderSummary:
    """What a run fetched, rendered and whether it was posted."""

    projects: list[Project] = field(default_factory=list)
    repositories: list[Repository] = field(default_factory=list)
    records: list[PullRequestRecord] = field(default_factory=list)
    blocks: list[Block] = field(default_factory=list)
    delivered: bool = False


def select_projects(client: BitbucketClient, config: Config) -> list[Project]:
    """Fetch visible projects and keep those on the allow-list, in fetch order.

    An empty allow-list selects every fetched project. Allow-listed keys the
    server did not return are ignored.
    """
    projects = client.get_projects()
    allowed = config.project_keys
    if not allowed:
        return projects

    selected = [p for p in projects if p.key in allowed]
    missing = set(allowed) - {p.key for p in selected}
    if missing:
        logger.debug("Configured projects not visible to this user: %s", ", ".join(sorted(missing)))
    return selected


def collect_repositories(client: BitbucketClient, projects: Iterable[Project]) -> list[Repository]:
    repositories: list[Repository] = []
    for project in projects:
        repositories.extend(client.get_repositories(project.key))
    return repositories


def collect_pull_requests(client: BitbucketClient, repositories: Iterable[Repository]) -> list[PullRequestRecord]:
    """Flatten the open pull requests of every repository into one record per PR."""
    records: list[PullRequestRecord] = []
    for repo in repositories:
        for pr in client.get_pull_requests(repo.project.key, repo.slug):
            records.append(PullRequestRecord.from_pull_request(repo, pr))
    return records


def run_reminder(config: Config, client: BitbucketClient | None = None, shadow: bool = False) -> ReminderSummary:
    """Run the whole reminder once.

    In shadow mode the digest is rendered but not sent to Slack.
    """
    own_client = client is None
    if own_client:
        client = BitbucketClient(config.bitbucket.host, config.bitbucket.user, config.bitbucket.password)

    summary = ReminderSummary()
    try:
        summary.projects = select_projects(client, config)
        logger.info("Selected %d project(s)", len(summary.projects))

        summary.repositories = collect_repositories(client, summary.projects)
        logger.info("Found %d repositories", len(summary.repositories))

        summary.records = collect_pull_requests(client, summary.repositories)
        logger.info("Found %d open pull request(s)", len(summary.records))
    finally:
        if own_client:
            client.close()

    summary.blocks = render_digest(summary.records, config.filter_reviewers, header=config.slack.header)
    if shadow:
        logger.info("Shadow mode: digest not posted")
        return summary

    publish_digest(config.slack.webhook_url, summary.blocks, text=config.slack.header)
    summary.delivered = True
    return summary
