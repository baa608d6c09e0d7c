"""
FriendGraph：好友請求、好友關係、好友群組

好友請求狀態：
    pending → accepted（終止）
    pending → rejected（終止）

承認請求時，雙方都會加入對方的好友清單：
actor 一定會更新；送出請求的一方只有在是目前使用者（Identity）時才能更新，
其他使用者只以快照存在，沒有可以修改的資料。
"""
from typing import Iterable, List, Optional
from uuid import UUID
import logging

from models import FriendGroup, FriendRequest, RequestStatus, User
from core.collaborators import Clock, Notifier
from core.exceptions import (
    AccessDenied,
    DuplicateRequest,
    FriendRequestNotFound,
    QuotaExceeded,
    RequestNotPending,
)
from core.feature_limiter import FeatureLimiter
from core.identity import Identity
from core.locks import WriteGate, single_writer, consistent_read
from services.message_service import friend_accepted_notification

logger = logging.getLogger(__name__)


class FriendGraph:

    def __init__(
        self,
        gate: WriteGate,
        clock: Clock,
        limiter: FeatureLimiter,
        identity: Identity,
        notifier: Notifier,
        requests: Optional[List[FriendRequest]] = None,
        groups: Optional[List[FriendGroup]] = None,
    ):
        self._gate = gate
        self._clock = clock
        self._limiter = limiter
        self._identity = identity
        self._notifier = notifier
        self._requests: List[FriendRequest] = requests if requests is not None else []
        self._groups: List[FriendGroup] = groups if groups is not None else []

    @property
    def requests(self) -> List[FriendRequest]:
        return self._requests

    @property
    def groups(self) -> List[FriendGroup]:
        return self._groups

    # ============ 好友請求 ============

    @single_writer
    def send_request(
        self,
        from_user: User,
        to_user_id: UUID,
        message: Optional[str] = None,
    ) -> FriendRequest:
        """
        送出好友請求

        異常：
            ValueError: 送給自己
            QuotaExceeded: 好友數已達免費上限
            DuplicateRequest: 同一個 (from, to) 已有 pending 請求
        """
        if from_user.id == to_user_id:
            raise ValueError("Cannot send a friend request to yourself")

        exempt = self._limiter.is_exempt
        if not exempt and not self._limiter.can_add_friend():
            raise QuotaExceeded("friends", self._limiter.friend_limit)

        if self._find_pending(from_user.id, to_user_id) is not None:
            raise DuplicateRequest(from_user.id, to_user_id)

        request = FriendRequest(
            from_user_id=from_user.id,
            to_user_id=to_user_id,
            timestamp=self._clock.now(),
            message=message
        )
        self._requests.append(request)

        if not exempt:
            self._limiter.increment_friend_count()

        logger.info(f"Friend request {request.id} sent: {from_user.id} -> {to_user_id}")
        return request.model_copy(deep=True)

    @single_writer
    def accept_request(self, request_id: UUID, actor: User) -> FriendRequest:
        """
        承認好友請求（只有收件者可以，且必須是 pending）

        異常：
            FriendRequestNotFound: 請求不存在
            AccessDenied: actor 不是收件者
            RequestNotPending: 已經承認或拒絕過
        """
        request = self._require_actionable(request_id, actor)

        request.status = RequestStatus.ACCEPTED
        if request.from_user_id not in actor.friends:
            actor.friends.append(request.from_user_id)
        self._identity.link_friend(request.from_user_id, actor.id)

        try:
            self._notifier.notify(friend_accepted_notification(actor.name))
        except Exception as e:
            logger.error(f"Failed to notify friend request {request_id}: {e}", exc_info=True)
        logger.info(f"Friend request {request_id} accepted by {actor.id}")
        return request.model_copy(deep=True)

    @single_writer
    def reject_request(self, request_id: UUID, actor: User) -> FriendRequest:
        """
        拒絕好友請求（終止狀態）

        異常：
            FriendRequestNotFound / AccessDenied / RequestNotPending
        """
        request = self._require_actionable(request_id, actor)
        request.status = RequestStatus.REJECTED

        logger.info(f"Friend request {request_id} rejected by {actor.id}")
        return request.model_copy(deep=True)

    @single_writer
    def remove_friend(self, friend_id: UUID, actor: User) -> bool:
        """
        從 actor 的好友清單移除（不影響好友數計數，也不修改對方的清單）

        返回：
            True 如果原本是好友
        """
        if friend_id not in actor.friends:
            return False
        actor.friends = [f for f in actor.friends if f != friend_id]
        logger.info(f"User {actor.id} removed friend {friend_id}")
        return True

    # ============ 群組 ============

    @single_writer
    def create_group(
        self,
        name: str,
        member_ids: Iterable[UUID],
        actor: User,
        description: Optional[str] = None,
    ) -> FriendGroup:
        """
        建立好友群組

        成員 = {actor} ∪ member_ids（去除重複，actor 永遠是第一位）

        異常：
            ValueError: 名稱空白
        """
        if not name.strip():
            raise ValueError("Group name must not be empty")

        members = [actor.id]
        for member_id in member_ids:
            if member_id not in members:
                members.append(member_id)

        group = FriendGroup(
            name=name.strip(),
            description=description,
            members=members,
            created_by=actor.id,
            created_at=self._clock.now()
        )
        self._groups.append(group)

        logger.info(f"Friend group {group.id} created by {actor.id} with {len(members)} members")
        return group.model_copy(deep=True)

    # ============ 查詢 ============

    @consistent_read
    def get_request(self, request_id: UUID) -> FriendRequest:
        return self._require_request(request_id)

    @consistent_read
    def pending_requests_for(self, user_id: UUID) -> List[FriendRequest]:
        """收到的 pending 請求"""
        return [
            r for r in self._requests
            if r.to_user_id == user_id and r.status == RequestStatus.PENDING
        ]

    @consistent_read
    def sent_requests_from(self, user_id: UUID) -> List[FriendRequest]:
        """送出且還在 pending 的請求"""
        return [
            r for r in self._requests
            if r.from_user_id == user_id and r.status == RequestStatus.PENDING
        ]

    @consistent_read
    def groups_for(self, user_id: UUID) -> List[FriendGroup]:
        return [g for g in self._groups if user_id in g.members]

    # ============ 內部 ============

    def _find_pending(self, from_user_id: UUID, to_user_id: UUID) -> Optional[FriendRequest]:
        for request in self._requests:
            if (
                request.from_user_id == from_user_id
                and request.to_user_id == to_user_id
                and request.status == RequestStatus.PENDING
            ):
                return request
        return None

    def _require_request(self, request_id: UUID) -> FriendRequest:
        for request in self._requests:
            if request.id == request_id:
                return request
        raise FriendRequestNotFound(request_id)

    def _require_actionable(self, request_id: UUID, actor: User) -> FriendRequest:
        request = self._require_request(request_id)
        if request.to_user_id != actor.id:
            raise AccessDenied(f"Friend request {request_id} is not addressed to {actor.id}")
        if request.status != RequestStatus.PENDING:
            raise RequestNotPending(request_id, request.status)
        return request
