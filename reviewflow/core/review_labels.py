"""Review label state machine.

Translates one review lifecycle event into a :class:`LabelDelta` from the
pull request's freshly fetched review snapshot and currently requested
reviewers. Webhook deliveries are not ordered, so no review state is carried
between events.

Per reviewer group the labels move through::

    needs_review ──┐
                   ├── requested ──> approved
                   │            └──> changes_requested ──(dismissed)──> requested
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from reviewflow.core.config import ReviewLabels
from reviewflow.core.models import LabelDelta, Review, ReviewSnapshot, ReviewState
from reviewflow.core.reviewer_groups import ReviewerGroupIndex

logger = logging.getLogger(__name__)

_EMPTY = LabelDelta()


class LabelDeltaBuilder:
    """Accumulates conditional add/remove decisions into one LabelDelta."""

    def __init__(self) -> None:
        self._add: set[str] = set()
        self._remove: set[str] = set()

    def add(self, key: str, *, when: bool = True) -> "LabelDeltaBuilder":
        if when:
            self._add.add(key)
        return self

    def remove(self, key: str, *, when: bool = True) -> "LabelDeltaBuilder":
        if when:
            self._remove.add(key)
        return self

    def build(self) -> LabelDelta:
        overlap = self._add & self._remove
        if overlap:
            raise ValueError(f"Label keys both added and removed: {sorted(overlap)}")
        return LabelDelta(add=frozenset(self._add), remove=frozenset(self._remove))


def build_review_snapshot(
    reviews: Iterable[dict[str, Any]],
    reviewer_groups: ReviewerGroupIndex,
    *,
    pr_author: str | None = None,
) -> ReviewSnapshot:
    """Reduce the chronological reviews listing to each reviewer's open review.

    A comment-only review never overrides an earlier approval or change
    request; a dismissed review clears the reviewer's state.
    """
    latest: dict[str, Review] = {}
    for data in reviews:
        user = data.get("user") or {}
        login = user.get("login")
        if not login or login == pr_author:
            continue

        state = ReviewState.parse(data.get("state"))
        if state == ReviewState.PENDING:
            continue
        if state == ReviewState.DISMISSED:
            latest.pop(login, None)
            continue
        if state == ReviewState.COMMENTED and login in latest:
            continue

        latest[login] = Review(
            login=login,
            user_id=user.get("id"),
            group=reviewer_groups.group_of(login),
            state=state,
        )
    return ReviewSnapshot(reviews=list(latest.values()))


class ReviewLabelStateMachine:
    """Compute label deltas for review lifecycle events of one organization."""

    def __init__(self, reviewer_groups: ReviewerGroupIndex, review_labels: dict[str, ReviewLabels]):
        self._groups = reviewer_groups
        self._review_labels = review_labels

    def _labels_for(self, reviewer: str) -> tuple[str | None, ReviewLabels | None]:
        group = self._groups.group_of(reviewer)
        if group is None:
            return None, None
        return group, self._review_labels.get(group)

    def request_should_wait(self, reviewer: str, requested_reviewers: list[str]) -> bool:
        """True when a pending request from a group this reviewer's group waits for exists."""
        return self._groups.review_should_wait(
            self._groups.group_of(reviewer),
            requested_reviewers,
            includes_wait_for_groups=True,
            exclude_login=reviewer,
        )

    def _has_other_pending_request(self, group: str, reviewer: str, requested_reviewers: list[str]) -> bool:
        return self._groups.review_should_wait(
            group,
            requested_reviewers,
            includes_reviewer_group=True,
            exclude_login=reviewer,
        )

    def review_requested(
        self,
        reviewer: str,
        requested_reviewers: list[str],
        snapshot: ReviewSnapshot,
    ) -> LabelDelta:
        group, labels = self._labels_for(reviewer)
        if labels is None:
            return _EMPTY
        if snapshot.has_changes_requested(group):
            logger.debug("Group %s still has changes requested: keeping labels", group)
            return _EMPTY

        should_wait = self.request_should_wait(reviewer, requested_reviewers)
        return (
            LabelDeltaBuilder()
            .add(labels.needs_review, when=should_wait)
            .add(labels.requested, when=not should_wait)
            .remove(labels.needs_review, when=not should_wait)
            .remove(labels.approved)
            .build()
        )

    def review_request_removed(
        self,
        reviewer: str,
        requested_reviewers: list[str],
        snapshot: ReviewSnapshot,
    ) -> LabelDelta:
        group, labels = self._labels_for(reviewer)
        if labels is None:
            return _EMPTY
        if self._has_other_pending_request(group, reviewer, requested_reviewers):
            return _EMPTY

        return (
            LabelDeltaBuilder()
            .add(labels.approved, when=snapshot.has_approved(group))
            .remove(labels.needs_review)
            .remove(labels.requested)
            .build()
        )

    def review_submitted(
        self,
        reviewer: str,
        state: ReviewState,
        requested_reviewers: list[str],
        snapshot: ReviewSnapshot,
    ) -> LabelDelta:
        group, labels = self._labels_for(reviewer)
        if labels is None:
            return _EMPTY

        if state == ReviewState.CHANGES_REQUESTED:
            return (
                LabelDeltaBuilder()
                .add(labels.changes_requested)
                .remove(labels.needs_review)
                .remove(labels.requested)
                .remove(labels.approved)
                .build()
            )

        if state != ReviewState.APPROVED:
            return _EMPTY

        # An approval never overrides an open change request from another group member.
        if snapshot.has_changes_requested(group):
            return _EMPTY

        cleared = not self._has_other_pending_request(group, reviewer, requested_reviewers)
        return (
            LabelDeltaBuilder()
            .add(labels.approved, when=cleared)
            .remove(labels.needs_review, when=cleared)
            .remove(labels.requested, when=cleared)
            .remove(labels.changes_requested)
            .build()
        )

    def review_dismissed(self, reviewer: str, snapshot: ReviewSnapshot) -> LabelDelta:
        group, labels = self._labels_for(reviewer)
        if labels is None:
            return _EMPTY
        if snapshot.has_changes_requested(group):
            return _EMPTY

        return (
            LabelDeltaBuilder()
            .add(labels.requested)
            .remove(labels.changes_requested)
            .remove(labels.approved)
            .build()
        )
