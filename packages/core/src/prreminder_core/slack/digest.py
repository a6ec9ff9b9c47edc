"""Slack digest rendering and delivery.

The digest is a list of Block Kit blocks:

    header section
    for each pull request:
        mrkdwn section
        divider

so a digest for N pull requests always has 1 + 2*N blocks.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from slack_sdk.errors import SlackRequestError
from slack_sdk.models.blocks import Block, DividerBlock, MarkdownTextObject, PlainTextObject, SectionBlock
from slack_sdk.webhook import WebhookClient

from prreminder_core.bitbucket.models import PullRequestRecord
from prreminder_core.config import DEFAULT_HEADER
from prreminder_core.errors import DeliveryError
from prreminder_core.reviewers import pending_reviewers

logger = logging.getLogger(__name__)

# Slack rejects messages with more blocks than this.
SLACK_MAX_BLOCKS = 50


def format_pull_request(record: PullRequestRecord, excluded: Iterable[str] = ()) -> str:
    reviewers = "".join(r.user.name + " " for r in pending_reviewers(record.reviewers, excluded))
    return (
        f"Project: {record.project_name} {record.project_key}\n"
        f"Repository: {record.repository_name}\n"
        f"<{record.url}|{record.title}>\n"
        f"To review: {reviewers}"
    )


def render_digest(
    records: Sequence[PullRequestRecord],
    excluded: Iterable[str] = (),
    header: str = DEFAULT_HEADER,
) -> list[Block]:
    excluded = list(excluded)
    blocks: list[Block] = [SectionBlock(text=PlainTextObject(text=header, emoji=True))]
    for record in records:
        blocks.append(SectionBlock(text=MarkdownTextObject(text=format_pull_request(record, excluded))))
        blocks.append(DividerBlock())
    if len(blocks) > SLACK_MAX_BLOCKS:
        logger.warning(
            "Digest has %d blocks (%d pull requests); Slack accepts at most %d and will likely reject it",
            len(blocks),
            len(records),
            SLACK_MAX_BLOCKS,
        )
    return blocks


def publish_digest(webhook_url: str, blocks: Sequence[Block], text: str = DEFAULT_HEADER) -> None:
    """POST the digest to a Slack incoming webhook.

    ``text`` is the notification fallback Slack shows where blocks cannot be
    rendered. Raises DeliveryError on a transport failure or a non-2xx
    response.
    """
    # No retry handlers: a dropped connection after the body is sent must not post twice.
    client = WebhookClient(webhook_url, retry_handlers=[])
    try:
        response = client.send(text=text, blocks=list(blocks))
    except (SlackRequestError, OSError) as e:
        raise DeliveryError(f"Could not deliver digest to Slack: {e}") from e

    if not 200 <= response.status_code < 300:
        raise DeliveryError(f"Slack webhook returned HTTP {response.status_code}: {response.body}")
    logger.info("Delivered digest with %d block(s)", len(blocks))
