"""
Recipient resolution for one elder.

Two independent sets:
- caregivers: every active staff assignment whose staff account is active;
- family: the user on the elder's subscription, only if that user's role is
  exactly `family_member`.

Results are never cached.
"""

from collections.abc import Iterable

import structlog

from carealert.domain.care import Recipient, RecipientRole, RecipientSet, UserRole
from carealert.domain.ports import CareDirectory

logger = structlog.get_logger(__name__)


class RecipientResolver:
    def __init__(self, directory: CareDirectory) -> None:
        self.directory = directory
        self.logger = logger.bind(component="recipient_resolver")

    async def resolve(self, elder_id: str, aliases: Iterable[str] = ()) -> RecipientSet:
        """
        Resolve caregivers and the family member for an elder.

        Args:
            elder_id: Elder record id; the subscription lookup uses only this id.
            aliases: Other ids assignments may be keyed by, such as the elder's
                own user id when an emergency arrived with it.
        """
        caregivers = await self._resolve_caregivers([elder_id, *aliases])
        family = await self._resolve_family(elder_id)

        recipients = RecipientSet(caregivers=caregivers, family=family)
        self.logger.info(
            "recipients_resolved",
            elder_id=elder_id,
            caregivers=len(caregivers),
            family=1 if family else 0,
        )
        if recipients.is_empty:
            self.logger.warning("no_recipients_found", elder_id=elder_id)
        return recipients

    async def _resolve_caregivers(self, elder_ids: list[str]) -> list[Recipient]:
        caregivers: list[Recipient] = []
        seen: set[str] = set()

        for key in dict.fromkeys(elder_ids):
            for assignment in await self.directory.find_active_assignments(key):
                if not assignment.is_active or assignment.staff_id in seen:
                    continue
                staff = await self.directory.find_user(assignment.staff_id)
                if staff is None or not staff.is_active:
                    self.logger.debug(
                        "inactive_staff_skipped",
                        elder_id=key,
                        staff_id=assignment.staff_id,
                    )
                    continue
                seen.add(staff.id)
                caregivers.append(Recipient.from_user(staff, RecipientRole.CAREGIVER))

        return caregivers

    async def _resolve_family(self, elder_id: str) -> Recipient | None:
        user = await self.directory.find_subscription_user(elder_id)
        if user is None:
            self.logger.debug("no_subscription_user", elder_id=elder_id)
            return None
        if user.role is not UserRole.FAMILY_MEMBER:
            self.logger.info(
                "subscription_user_not_family_member",
                elder_id=elder_id,
                user_id=user.id,
                role=user.role.value,
            )
            return None
        return Recipient.from_user(user, RecipientRole.FAMILY)
