"""
In-memory care directory.

Holds users, elders, staff assignments and subscriptions in dicts. Used by
the scenario runner and the test suite; the platform's real directory is a
database behind the same CareDirectory protocol.
"""

from uuid import uuid4

from carealert.domain.care import Elder, StaffAssignment, User


class InMemoryCareDirectory:
    """Implements CareDirectory over plain dictionaries."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.elders: dict[str, Elder] = {}
        self.assignments: list[StaffAssignment] = []
        # subscription id -> subscribing user id
        self.subscriptions: dict[str, str] = {}

    # ---- seeding ----

    def add_user(self, user: User) -> User:
        self.users[user.id] = user
        return user

    def add_elder(self, elder: Elder) -> Elder:
        self.elders[elder.id] = elder
        return elder

    def assign_staff(self, staff_id: str, elder_id: str, is_active: bool = True) -> StaffAssignment:
        assignment = StaffAssignment(
            id=str(uuid4()), staff_id=staff_id, elder_id=elder_id, is_active=is_active
        )
        self.assignments.append(assignment)
        return assignment

    def add_subscription(self, subscription_id: str, user_id: str) -> None:
        self.subscriptions[subscription_id] = user_id

    # ---- CareDirectory ----

    async def find_elder(self, elder_id: str) -> Elder | None:
        return self.elders.get(elder_id)

    async def find_elder_by_user_id(self, user_id: str) -> Elder | None:
        return next((e for e in self.elders.values() if e.user_id == user_id), None)

    async def find_user(self, user_id: str) -> User | None:
        return self.users.get(user_id)

    async def find_active_assignments(self, elder_id: str) -> list[StaffAssignment]:
        return [a for a in self.assignments if a.elder_id == elder_id and a.is_active]

    async def find_staff_assignments(self, staff_id: str) -> list[StaffAssignment]:
        return [a for a in self.assignments if a.staff_id == staff_id and a.is_active]

    async def find_subscription_user(self, elder_id: str) -> User | None:
        elder = self.elders.get(elder_id)
        if elder is None or elder.subscription_id is None:
            return None
        user_id = self.subscriptions.get(elder.subscription_id)
        return self.users.get(user_id) if user_id else None
