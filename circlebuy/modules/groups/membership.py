"""
Membership state machine for a (group, user) pair.

    non_member --join (public / auto-approve / invite / code)--> member
    non_member --join (private, needs approval)--------------> pending_request
    pending_request --approve--> member
    pending_request --reject / cancel--> non_member
    member --leave--> non_member

The functions here only decide; GroupService applies the decision to the
hosted tables. Uniqueness of (group_id, user_id) rows is carried by upserts
there, so a decision can be re-applied safely.
"""

import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from circlebuy.core.errors import (
    AlreadyMember, DuplicateJoinRequest, GroupFull, InviteRequired,
    NotMember, CreatorCannotLeave, JoinRequestNotFound,
)


class MembershipState(str, Enum):
    NON_MEMBER = "non_member"
    PENDING_REQUEST = "pending_request"
    MEMBER = "member"


class JoinOutcome(str, Enum):
    JOINED = "joined"
    REQUESTED = "requested"


@dataclass(frozen=True)
class GroupPolicy:
    creator_id: str
    is_private: bool = False
    invite_only: bool = False
    auto_approve_requests: bool = False
    member_limit: Optional[int] = None

    @classmethod
    def from_row(cls, row: dict) -> "GroupPolicy":
        return cls(
            creator_id=row.get("creator_id"),
            is_private=bool(row.get("is_private")),
            invite_only=bool(row.get("invite_only")),
            auto_approve_requests=bool(row.get("auto_approve_requests")),
            member_limit=row.get("member_limit"),
        )

    @property
    def needs_approval(self) -> bool:
        return self.is_private and not self.auto_approve_requests

    def is_full(self, member_count: int) -> bool:
        return self.member_limit is not None and member_count >= self.member_limit


def membership_state(is_member: bool, latest_request_status: Optional[str]) -> MembershipState:
    if is_member:
        return MembershipState.MEMBER
    if latest_request_status == "pending":
        return MembershipState.PENDING_REQUEST
    return MembershipState.NON_MEMBER


def resolve_join(
    policy: GroupPolicy,
    state: MembershipState,
    member_count: int,
    has_invite: bool = False,
    access_code_ok: bool = False,
) -> JoinOutcome:
    """Decide what a join attempt does, or raise the rule it breaks.

    An invite or a matching access code admits the user directly, skipping
    both the invite-only gate and the approval step.
    """
    admitted = has_invite or access_code_ok
    if state == MembershipState.MEMBER:
        raise AlreadyMember()
    if state == MembershipState.PENDING_REQUEST and not admitted:
        raise DuplicateJoinRequest()
    if policy.is_full(member_count):
        raise GroupFull()
    if admitted:
        return JoinOutcome.JOINED
    if policy.invite_only:
        raise InviteRequired()
    if policy.needs_approval:
        return JoinOutcome.REQUESTED
    return JoinOutcome.JOINED


def check_leave(policy: GroupPolicy, state: MembershipState, user_id: str):
    if state != MembershipState.MEMBER:
        raise NotMember()
    if policy.creator_id == user_id:
        raise CreatorCannotLeave()


def check_cancel(state: MembershipState):
    if state != MembershipState.PENDING_REQUEST:
        raise JoinRequestNotFound()


def access_code_matches(stored: Optional[str], supplied: Optional[str]) -> bool:
    """Exact, case-sensitive comparison in constant time."""
    if not stored or supplied is None:
        return False
    return hmac.compare_digest(stored.encode("utf-8"), supplied.encode("utf-8"))
