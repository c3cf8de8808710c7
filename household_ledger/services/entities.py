"""
Per-Entity Services

Thin typed wrappers over the remote store, one per household table.
They turn rows into models and are the add/update/delete operations the
offline queue replays against.
"""

from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

from household_ledger.models.entities import (
    Budget,
    Category,
    EntityType,
    Expense,
    Household,
    HouseholdEntity,
    Member,
    RecurringPayment,
    Reminder,
    ShoppingList,
    ShoppingListItem,
    Todo,
)
from household_ledger.services.storage.interface import NotFoundError, RemoteStoreInterface
from household_ledger.validation import validate_email, validate_household_name


T = TypeVar("T", bound=HouseholdEntity)


class EntityService(Generic[T]):
    """CRUD for one entity type, scoped by household on reads."""

    def __init__(self, remote: RemoteStoreInterface, entity_type: EntityType):
        self._remote = remote
        self.entity_type = entity_type

    def to_model(self, row: dict) -> T:
        return self.entity_type.model.model_validate(row)

    async def list_for_household(self, household_id: str) -> list[T]:
        rows = await self._remote.select(self.entity_type, household_id)
        return [self.to_model(row) for row in rows]

    async def add(self, payload: dict) -> T:
        row = await self._remote.insert(self.entity_type, payload)
        return self.to_model(row)

    async def update(self, entity_id: str, payload: dict) -> T:
        row = await self._remote.update(self.entity_type, entity_id, payload)
        return self.to_model(row)

    async def delete(self, entity_id: str) -> None:
        await self._remote.delete(self.entity_type, entity_id)


class ExpenseService(EntityService[Expense]):
    def __init__(self, remote: RemoteStoreInterface):
        super().__init__(remote, EntityType.EXPENSES)


class CategoryService(EntityService[Category]):
    def __init__(self, remote: RemoteStoreInterface):
        super().__init__(remote, EntityType.CATEGORIES)


class BudgetService(EntityService[Budget]):
    def __init__(self, remote: RemoteStoreInterface):
        super().__init__(remote, EntityType.BUDGETS)


class RecurringPaymentService(EntityService[RecurringPayment]):
    def __init__(self, remote: RemoteStoreInterface):
        super().__init__(remote, EntityType.RECURRING_PAYMENTS)


class ShoppingListService(EntityService[ShoppingListItem]):
    def __init__(self, remote: RemoteStoreInterface):
        super().__init__(remote, EntityType.SHOPPING_ITEMS)


class TodoService(EntityService[Todo]):
    def __init__(self, remote: RemoteStoreInterface):
        super().__init__(remote, EntityType.TODOS)


class ReminderService(EntityService[Reminder]):
    def __init__(self, remote: RemoteStoreInterface):
        super().__init__(remote, EntityType.REMINDERS)


class ShoppingListsService(EntityService[ShoppingList]):
    """Named shopping lists (not the items on them)."""

    def __init__(self, remote: RemoteStoreInterface):
        super().__init__(remote, EntityType.SHOPPING_LISTS)


SERVICE_CLASSES: dict[EntityType, type[EntityService]] = {
    EntityType.EXPENSES: ExpenseService,
    EntityType.CATEGORIES: CategoryService,
    EntityType.BUDGETS: BudgetService,
    EntityType.RECURRING_PAYMENTS: RecurringPaymentService,
    EntityType.SHOPPING_ITEMS: ShoppingListService,
    EntityType.TODOS: TodoService,
    EntityType.REMINDERS: ReminderService,
    EntityType.SHOPPING_LISTS: ShoppingListsService,
}


def create_entity_services(remote: RemoteStoreInterface) -> dict[EntityType, EntityService]:
    """One service per entity type, all bound to the same remote store."""
    return {entity_type: cls(remote) for entity_type, cls in SERVICE_CLASSES.items()}


class HouseholdService:
    """
    Household membership: create, join, invite and list members.

    A household's id doubles as its invite code. Joining or being invited
    moves the user into that household; a user belongs to one at a time.

    Raises ValueError for input that fails validation and NotFoundError
    for an unknown invite code or email. Messages are user-facing.
    """

    def __init__(self, remote: RemoteStoreInterface):
        self._remote = remote

    async def get_members(self, household_id: str) -> list[Member]:
        rows = await self._remote.list_members(household_id)
        return [Member.model_validate(row) for row in rows]

    async def get_household(self, household_id: str) -> Optional[Household]:
        row = await self._remote.get_household(household_id)
        return Household.model_validate(row) if row else None

    async def create_household(self, name: str, member_id: str) -> Household:
        """Create a household and move the creating user into it."""
        check = validate_household_name(name)
        if not check.is_valid:
            raise ValueError(check.error)

        row = await self._remote.insert_household({
            "name": name.strip(),
            "created_at": datetime.now(timezone.utc).isoformat(),
        })
        await self._remote.update_member(member_id, {"household_id": row["id"]})
        return Household.model_validate(row)

    async def join_household(self, invite_code: str, member_id: str) -> Household:
        code = (invite_code or "").strip()
        household = await self.get_household(code) if code else None
        if household is None:
            raise NotFoundError("Invalid invite code")
        await self._remote.update_member(member_id, {"household_id": household.id})
        return household

    async def invite_by_email(self, email: str, household_id: str) -> Member:
        """Add an existing user to a household by their email."""
        check = validate_email(email)
        if not check.is_valid:
            raise ValueError(check.error)

        row = await self._remote.find_member_by_email(email.strip())
        if row is None:
            raise NotFoundError("User not found. They need to sign up first.")
        updated = await self._remote.update_member(row["id"], {"household_id": household_id})
        return Member.model_validate(updated)
