"""
BlockService - user-to-user blocking.

A block prevents the blocked user from making offers on, or checking out,
the blocker's listings.
"""

import logging
from typing import List

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from marketplace.trust.domain.models import Block

User = get_user_model()
logger = logging.getLogger(__name__)


class BlockService(BaseService):
    @BaseService.log_performance
    def block_user(self, blocker, blocked_user_id, reason: str = "") -> ServiceResult[Block]:
        if str(blocker.pk) == str(blocked_user_id):
            return service_err(ErrorCodes.SELF_BLOCK, "You cannot block yourself")

        blocked_user = User.objects.filter(pk=blocked_user_id).first()
        if blocked_user is None:
            return service_err(ErrorCodes.USER_NOT_FOUND, "User not found")

        if Block.objects.filter(blocker=blocker, blocked_user=blocked_user).exists():
            return service_err(ErrorCodes.ALREADY_BLOCKED, "User is already blocked")

        try:
            with transaction.atomic():
                block = Block.objects.create(blocker=blocker, blocked_user=blocked_user, reason=reason or "")
        except IntegrityError:
            # Lost a race against an identical request
            return service_err(ErrorCodes.ALREADY_BLOCKED, "User is already blocked")

        self.logger.info(f"User {blocker.pk} blocked user {blocked_user.pk}")
        return service_ok(block)

    @BaseService.log_performance
    def unblock_user(self, blocker, blocked_user_id) -> ServiceResult[bool]:
        deleted, _ = Block.objects.filter(blocker=blocker, blocked_user_id=blocked_user_id).delete()
        if not deleted:
            return service_err(ErrorCodes.BLOCK_NOT_FOUND, "User is not blocked")

        self.logger.info(f"User {blocker.pk} unblocked user {blocked_user_id}")
        return service_ok(True)

    def list_blocks(self, blocker) -> ServiceResult[List[Block]]:
        return service_ok(list(Block.objects.filter(blocker=blocker).select_related("blocked_user")))

    def is_blocked(self, blocker_id, blocked_id) -> bool:
        """True when ``blocker_id`` has blocked ``blocked_id``."""
        return Block.objects.filter(blocker_id=blocker_id, blocked_user_id=blocked_id).exists()
