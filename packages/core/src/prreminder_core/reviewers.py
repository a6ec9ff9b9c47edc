"""Reviewer filtering."""

from __future__ import annotations

from collections.abc import Iterable

from prreminder_core.bitbucket.models import UNAPPROVED, Participant


def filter_reviewers(reviewers: Iterable[Participant], excluded: Iterable[str]) -> list[Participant]:
    """Drop reviewers whose user name is in ``excluded``, keeping the original order."""
    excluded = set(excluded)
    return [r for r in reviewers if r.user.name not in excluded]


def pending_reviewers(reviewers: Iterable[Participant], excluded: Iterable[str]) -> list[Participant]:
    """Reviewers that are not excluded and have not approved yet."""
    return [r for r in filter_reviewers(reviewers, excluded) if r.status == UNAPPROVED]
