from supabase import Client
from circlebuy.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupDetailResponse, ProductSummary,
    DiscountProgressResponse, MemberResponse, JoinResult, JoinRequestResponse,
    ReviewResult, InviteResult, InviteResponse, AccessCodeResponse
)
from circlebuy.modules.groups.membership import (
    GroupPolicy, JoinOutcome, MembershipState, membership_state, resolve_join,
    check_leave, check_cancel, access_code_matches
)
from circlebuy.modules.products.service import ProductService
from circlebuy.modules.profiles.service import ProfileService
from circlebuy.core.dependencies import fetch_group, check_group_manager, check_group_member
from circlebuy.core.discounts import discount_progress
from circlebuy.core.errors import (
    CircleBuyError, GroupFull, InvalidAccessCode, JoinRequestNotFound,
    JoinRequestAlreadyReviewed, PermissionDenied, ProductNotFound
)
from circlebuy.core.session import UserSession
from datetime import datetime, timezone
from typing import Dict, List, Optional
import secrets
import logging

logger = logging.getLogger(__name__)

MEMBER_CONFLICT = "group_id,user_id"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_access_code() -> str:
    return secrets.token_hex(4).upper()


class GroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.products = ProductService(supabase)
        self.profiles = ProfileService(supabase)

    # ----- reads -------------------------------------------------------

    def _to_response(self, group: dict, session: UserSession, member_count: Optional[int] = None) -> GroupResponse:
        data = dict(group)
        if not (session.is_admin or group.get("creator_id") == session.user_id):
            data["access_code"] = None
        data["member_count"] = member_count
        return GroupResponse(**data)

    def count_members(self, group_id: str) -> int:
        result = self.supabase.table("group_members")\
            .select("id", count="exact")\
            .eq("group_id", group_id)\
            .execute()
        return result.count or 0

    def _member_counts(self, group_ids: List[str]) -> Dict[str, int]:
        if not group_ids:
            return {}
        result = self.supabase.table("group_members")\
            .select("group_id")\
            .in_("group_id", group_ids)\
            .execute()
        counts = {gid: 0 for gid in group_ids}
        for row in result.data or []:
            counts[row["group_id"]] = counts.get(row["group_id"], 0) + 1
        return counts

    def _is_member(self, group_id: str, user_id: str) -> bool:
        result = self.supabase.table("group_members")\
            .select("id")\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        return bool(result.data)

    def _latest_request(self, group_id: str, user_id: str) -> Optional[dict]:
        result = self.supabase.table("group_join_requests")\
            .select("*")\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .order("requested_at", desc=True)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def get_membership_state(self, group_id: str, user_id: str) -> MembershipState:
        request = self._latest_request(group_id, user_id)
        return membership_state(
            self._is_member(group_id, user_id),
            request["status"] if request else None
        )

    def _has_pending_invite(self, group_id: str, email: str) -> bool:
        if not email:
            return False
        result = self.supabase.table("group_invites")\
            .select("id")\
            .eq("group_id", group_id)\
            .eq("invited_email", email.lower())\
            .eq("status", "pending")\
            .limit(1)\
            .execute()
        return bool(result.data)

    def list_groups(
        self,
        session: UserSession,
        mine: bool = False,
        product_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> List[GroupResponse]:
        """Public groups by default; mine=True lists every group the caller belongs to, private ones included."""
        query = self.supabase.table("groups").select("*")
        if mine:
            members_result = self.supabase.table("group_members")\
                .select("group_id")\
                .eq("user_id", session.user_id)\
                .execute()
            group_ids = [m["group_id"] for m in members_result.data or []]
            if not group_ids:
                return []
            query = query.in_("id", group_ids)
        elif not session.is_admin:
            query = query.eq("is_private", False)
        if product_id:
            query = query.eq("product_id", product_id)
        result = query.order("created_at", desc=True)\
            .limit(limit)\
            .offset(offset)\
            .execute()
        groups = result.data or []
        counts = self._member_counts([g["id"] for g in groups])
        return [self._to_response(g, session, counts.get(g["id"], 0)) for g in groups]

    def list_members(self, group_id: str, session: UserSession) -> List[MemberResponse]:
        group = fetch_group(group_id, self.supabase)
        if group.get("is_private"):
            check_group_member(group_id, session, self.supabase)
        return self._members(group)

    def _members(self, group: dict) -> List[MemberResponse]:
        result = self.supabase.table("group_members")\
            .select("user_id, joined_at")\
            .eq("group_id", group["id"])\
            .order("joined_at")\
            .execute()
        rows = result.data or []
        profiles = self.profiles.get_summaries([r["user_id"] for r in rows])
        members = []
        for row in rows:
            profile = profiles.get(row["user_id"])
            members.append(MemberResponse(
                user_id=row["user_id"],
                joined_at=row.get("joined_at"),
                full_name=profile.full_name if profile else None,
                avatar_url=profile.avatar_url if profile else None,
                is_creator=row["user_id"] == group.get("creator_id")
            ))
        return members

    def get_discount(self, group: dict, member_count: int) -> Optional[DiscountProgressResponse]:
        if not group.get("product_id"):
            return None
        product = self.products.get_product(group["product_id"])
        tiers = self.products.get_discount_tiers(product.id)
        return DiscountProgressResponse.from_progress(
            discount_progress(product.price, member_count, tiers)
        )

    def get_group_detail(self, group_id: str, session: UserSession) -> GroupDetailResponse:
        """Group with the caller's membership state and discount progress.

        Members, product and discount are hidden from outsiders of private groups.
        """
        group = fetch_group(group_id, self.supabase)
        state = self.get_membership_state(group_id, session.user_id)
        is_creator = group.get("creator_id") == session.user_id
        can_view = (
            not group.get("is_private")
            or state == MembershipState.MEMBER
            or is_creator
            or session.is_admin
        )
        member_count = self.count_members(group_id)
        base = self._to_response(group, session, member_count)

        creator = self.profiles.get_summaries([group["creator_id"]]).get(group["creator_id"])
        product = None
        members = None
        discount = None
        if can_view:
            members = self._members(group)
            if group.get("product_id"):
                try:
                    p = self.products.get_product(group["product_id"])
                    product = ProductSummary(id=p.id, name=p.name, price=p.price, image_url=p.image_url)
                    discount = self.get_discount(group, member_count)
                except ProductNotFound:
                    logger.warning(f"Group {group_id} references missing product {group['product_id']}")

        return GroupDetailResponse(
            **base.model_dump(),
            creator=creator,
            product=product,
            members=members,
            membership_state=state,
            is_creator=is_creator,
            can_view=can_view,
            discount=discount
        )

    # ----- lifecycle ---------------------------------------------------

    def create_group(self, group_data: GroupCreate, session: UserSession) -> GroupResponse:
        """Create a group around a product and add the creator as its first member"""
        product = self.products.get_product(group_data.product_id)
        if not product.is_active:
            raise ProductNotFound("Product is not available")
        if not product.group_order_enabled:
            raise CircleBuyError(
                "Group buying is not enabled for this product",
                code="GROUP_ORDER_DISABLED", http_status=409
            )

        result = self.supabase.table("groups").insert({
            "name": group_data.name,
            "description": group_data.description,
            "creator_id": session.user_id,
            "product_id": group_data.product_id,
            "is_private": group_data.is_private,
            "invite_only": group_data.invite_only,
            "auto_approve_requests": group_data.auto_approve_requests,
            "access_code": generate_access_code() if group_data.is_private else None,
            "member_limit": group_data.member_limit
        }).execute()
        group = result.data[0]

        try:
            self._add_member(group["id"], session.user_id)
        except Exception:
            logger.error(f"Creator membership insert failed; rolling back group {group['id']}")
            self.supabase.table("groups").delete().eq("id", group["id"]).execute()
            raise

        logger.info(f"User {session.user_id} created group {group['id']} (private={group_data.is_private})")
        return self._to_response(group, session, 1)

    def update_group(self, group_id: str, group_data: GroupUpdate, session: UserSession) -> GroupResponse:
        group = check_group_manager(group_id, session, self.supabase)
        update_data = group_data.model_dump(exclude_unset=True, exclude_none=True)

        member_count = self.count_members(group_id)
        if "member_limit" in update_data and update_data["member_limit"] < member_count:
            raise CircleBuyError(
                f"member_limit cannot be below the current member count ({member_count})",
                code="MEMBER_LIMIT_TOO_LOW", http_status=409
            )
        if update_data.get("is_private") and not group.get("access_code"):
            update_data["access_code"] = generate_access_code()
        elif update_data.get("is_private") is False:
            update_data["access_code"] = None
        update_data["updated_at"] = _now()

        result = self.supabase.table("groups")\
            .update(update_data)\
            .eq("id", group_id)\
            .execute()
        return self._to_response(result.data[0], session, member_count)

    def rotate_access_code(self, group_id: str, session: UserSession) -> AccessCodeResponse:
        group = check_group_manager(group_id, session, self.supabase)
        if not group.get("is_private"):
            raise CircleBuyError("Public groups do not use access codes", code="NOT_PRIVATE", http_status=409)
        code = generate_access_code()
        self.supabase.table("groups")\
            .update({"access_code": code, "updated_at": _now()})\
            .eq("id", group_id)\
            .execute()
        return AccessCodeResponse(group_id=group_id, access_code=code)

    def delete_group(self, group_id: str, session: UserSession) -> bool:
        """Delete group and everything hanging off it (creator or admin)"""
        check_group_manager(group_id, session, self.supabase)
        for table in ("group_invites", "group_join_requests", "group_members"):
            self.supabase.table(table)\
                .delete()\
                .eq("group_id", group_id)\
                .execute()
        result = self.supabase.table("groups")\
            .delete()\
            .eq("id", group_id)\
            .execute()
        logger.info(f"Group {group_id} deleted by {session.user_id}")
        return len(result.data) > 0

    # ----- membership transitions ------------------------------------

    def _add_member(self, group_id: str, user_id: str):
        self.supabase.table("group_members").upsert(
            {"group_id": group_id, "user_id": user_id, "joined_at": _now()},
            on_conflict=MEMBER_CONFLICT,
            ignore_duplicates=True
        ).execute()

    def _clear_requests(self, group_id: str, user_id: str):
        self.supabase.table("group_join_requests")\
            .delete()\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .execute()

    def _admit(self, group_id: str, session: UserSession, had_invite: bool):
        self._add_member(group_id, session.user_id)
        self._clear_requests(group_id, session.user_id)
        if had_invite:
            self.supabase.table("group_invites")\
                .update({"status": "accepted"})\
                .eq("group_id", group_id)\
                .eq("invited_email", session.email.lower())\
                .eq("status", "pending")\
                .execute()

    def join_group(self, group_id: str, session: UserSession) -> JoinResult:
        group = fetch_group(group_id, self.supabase)
        policy = GroupPolicy.from_row(group)
        state = self.get_membership_state(group_id, session.user_id)
        has_invite = self._has_pending_invite(group_id, session.email)

        outcome = resolve_join(policy, state, self.count_members(group_id), has_invite=has_invite)

        if outcome == JoinOutcome.REQUESTED:
            self.supabase.table("group_join_requests").upsert(
                {
                    "group_id": group_id,
                    "user_id": session.user_id,
                    "status": "pending",
                    "requested_at": _now(),
                    "reviewed_at": None
                },
                on_conflict=MEMBER_CONFLICT
            ).execute()
            logger.info(f"User {session.user_id} requested to join group {group_id}")
            return JoinResult(
                group_id=group_id,
                action="requested",
                membership_state=MembershipState.PENDING_REQUEST,
                message=f"Your request to join {group['name']} has been sent and is pending approval."
            )

        self._admit(group_id, session, has_invite)
        logger.info(f"User {session.user_id} joined group {group_id}")
        return JoinResult(
            group_id=group_id,
            action="joined",
            membership_state=MembershipState.MEMBER,
            message=f"You joined {group['name']}"
        )

    def join_with_access_code(self, group_id: str, access_code: str, session: UserSession) -> JoinResult:
        group = fetch_group(group_id, self.supabase)
        if not access_code_matches(group.get("access_code"), access_code):
            logger.info(f"Rejected access code attempt by {session.user_id} on group {group_id}")
            raise InvalidAccessCode()

        policy = GroupPolicy.from_row(group)
        state = self.get_membership_state(group_id, session.user_id)
        resolve_join(policy, state, self.count_members(group_id), access_code_ok=True)

        self._admit(group_id, session, self._has_pending_invite(group_id, session.email))
        logger.info(f"User {session.user_id} joined group {group_id} with access code")
        return JoinResult(
            group_id=group_id,
            action="joined",
            membership_state=MembershipState.MEMBER,
            message=f"You joined {group['name']}"
        )

    def leave_group(self, group_id: str, session: UserSession) -> JoinResult:
        group = fetch_group(group_id, self.supabase)
        state = self.get_membership_state(group_id, session.user_id)
        check_leave(GroupPolicy.from_row(group), state, session.user_id)

        self.supabase.table("group_members")\
            .delete()\
            .eq("group_id", group_id)\
            .eq("user_id", session.user_id)\
            .execute()
        self._clear_requests(group_id, session.user_id)
        logger.info(f"User {session.user_id} left group {group_id}")
        return JoinResult(
            group_id=group_id,
            action="left",
            membership_state=MembershipState.NON_MEMBER,
            message=f"You left {group['name']}"
        )

    def cancel_join_request(self, group_id: str, session: UserSession) -> JoinResult:
        fetch_group(group_id, self.supabase)
        check_cancel(self.get_membership_state(group_id, session.user_id))
        self._clear_requests(group_id, session.user_id)
        return JoinResult(
            group_id=group_id,
            action="cancelled",
            membership_state=MembershipState.NON_MEMBER,
            message="Your join request was cancelled"
        )

    # ----- approval workflow -----------------------------------------

    def list_join_requests(self, group_id: str, session: UserSession) -> List[JoinRequestResponse]:
        check_group_manager(group_id, session, self.supabase)
        result = self.supabase.table("group_join_requests")\
            .select("*")\
            .eq("group_id", group_id)\
            .eq("status", "pending")\
            .order("requested_at")\
            .execute()
        rows = result.data or []
        profiles = self.profiles.get_summaries([r["user_id"] for r in rows])
        return [JoinRequestResponse(**r, requester=profiles.get(r["user_id"])) for r in rows]

    def _get_request(self, group_id: str, request_id: str) -> dict:
        result = self.supabase.table("group_join_requests")\
            .select("*")\
            .eq("id", request_id)\
            .eq("group_id", group_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise JoinRequestNotFound("Join request not found")
        request = result.data[0]
        if request["status"] != "pending":
            raise JoinRequestAlreadyReviewed(request["status"])
        return request

    def approve_join_request(self, group_id: str, request_id: str, session: UserSession) -> ReviewResult:
        group = check_group_manager(group_id, session, self.supabase)
        request = self._get_request(group_id, request_id)
        if GroupPolicy.from_row(group).is_full(self.count_members(group_id)):
            raise GroupFull()

        self._add_member(group_id, request["user_id"])
        self._clear_requests(group_id, request["user_id"])
        logger.info(f"Join request {request_id} approved by {session.user_id}")
        return ReviewResult(request_id=request_id, group_id=group_id, user_id=request["user_id"], status="approved")

    def reject_join_request(self, group_id: str, request_id: str, session: UserSession) -> ReviewResult:
        check_group_manager(group_id, session, self.supabase)
        request = self._get_request(group_id, request_id)
        self.supabase.table("group_join_requests")\
            .update({"status": "rejected", "reviewed_at": _now()})\
            .eq("id", request_id)\
            .execute()
        logger.info(f"Join request {request_id} rejected by {session.user_id}")
        return ReviewResult(request_id=request_id, group_id=group_id, user_id=request["user_id"], status="rejected")

    # ----- invites -----------------------------------------------------

    def invite_members(self, group_id: str, emails: List[str], session: UserSession) -> InviteResult:
        """Invite people by email. Each invite is written independently."""
        check_group_member(group_id, session, self.supabase)
        sent, skipped, failed = [], [], []
        for email in dict.fromkeys(e.strip().lower() for e in emails):
            if self._has_pending_invite(group_id, email):
                skipped.append(email)
                continue
            try:
                self.supabase.table("group_invites").insert({
                    "group_id": group_id,
                    "invited_by": session.user_id,
                    "invited_email": email,
                    "status": "pending"
                }).execute()
                sent.append(email)
            except Exception as e:
                logger.warning(f"Failed to invite {email} to group {group_id}: {e}")
                failed.append(email)
        return InviteResult(sent=sent, skipped=skipped, failed=failed)

    def list_my_invites(self, session: UserSession) -> List[InviteResponse]:
        result = self.supabase.table("group_invites")\
            .select("*")\
            .eq("invited_email", session.email.lower())\
            .eq("status", "pending")\
            .order("created_at", desc=True)\
            .execute()
        rows = result.data or []
        if not rows:
            return []
        groups = self.supabase.table("groups")\
            .select("id, name")\
            .in_("id", list({r["group_id"] for r in rows}))\
            .execute()
        names = {g["id"]: g["name"] for g in groups.data or []}
        return [InviteResponse(**r, group_name=names.get(r["group_id"])) for r in rows]

    def require_visible(self, group_id: str, session: UserSession) -> dict:
        """Group row if the caller may see its contents; raises otherwise"""
        group = fetch_group(group_id, self.supabase)
        if group.get("is_private") and not (
            session.is_admin
            or group.get("creator_id") == session.user_id
            or self._is_member(group_id, session.user_id)
        ):
            raise PermissionDenied("This group is private")
        return group
