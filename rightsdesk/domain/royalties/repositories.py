from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from .models import (
    BatchOperation,
    BatchStatus,
    ClientBalance,
    ImportStaging,
    Payout,
    PayoutExpense,
    PayoutStage,
    ProcessingStatus,
    ReconciliationBatch,
    RoyaltyAllocation,
    WorkflowHistoryEntry,
)


class StagingRepository(Protocol):
    async def create(
        self,
        *,
        user_id: int,
        filename: str,
        detected_source: str,
        raw_data: Sequence[Mapping[str, Any]],
        mapped_data: Sequence[Mapping[str, Any]],
        unmapped_fields: Sequence[str],
        validation_errors: Sequence[str],
        validation_status: str,
        batch_id: Optional[int] = None,
    ) -> int: ...

    async def get(self, staging_id: int) -> Optional[ImportStaging]: ...

    async def list_for_user(self, user_id: int, *, status: ProcessingStatus | None = None) -> list[ImportStaging]: ...

    async def set_status(self, staging_id: int, status: ProcessingStatus) -> None: ...

    async def delete(self, staging_id: int) -> bool:
        """Removes the staging record together with the allocations created from it."""
        ...


class AllocationsRepository(Protocol):
    async def create(self, user_id: int, fields: Mapping[str, Any]) -> int: ...

    async def get(self, allocation_id: int) -> Optional[RoyaltyAllocation]: ...

    async def list_for_user(
        self,
        user_id: int,
        *,
        copyright_id: int | None = None,
        staging_id: int | None = None,
        batch_id: int | None = None,
        ids: Sequence[int] | None = None,
        include_children: bool = True,
        limit: int | None = None,
    ) -> list[RoyaltyAllocation]: ...

    async def update(self, allocation_id: int, fields: Mapping[str, Any]) -> None: ...

    async def link_to_batch(self, batch_id: int, allocation_ids: Sequence[int]) -> int: ...

    async def sum_for_client(
        self, user_id: int, client_id: int, period_start: str, period_end: str
    ) -> float: ...


class BatchesRepository(Protocol):
    async def next_sequence(self, user_id: int, year: int) -> int: ...

    async def create(
        self,
        *,
        user_id: int,
        batch_id: str,
        source: str,
        period: Optional[str],
        statement_total: float,
        date_received: Optional[str],
    ) -> int: ...

    async def get(self, batch_pk: int) -> Optional[ReconciliationBatch]: ...

    async def list_for_user(self, user_id: int) -> list[ReconciliationBatch]: ...

    async def set_status(self, batch_pk: int, status: BatchStatus) -> None: ...


class PayoutsRepository(Protocol):
    async def create(self, fields: Mapping[str, Any]) -> int: ...

    async def get(self, payout_id: int) -> Optional[Payout]: ...

    async def list_for_user(
        self,
        user_id: int,
        *,
        client_id: int | None = None,
        stage: PayoutStage | None = None,
    ) -> list[Payout]: ...

    async def update(self, payout_id: int, fields: Mapping[str, Any]) -> None: ...

    async def paid_totals(self, user_id: int, client_id: int) -> tuple[float, float]:
        """Returns (payments, gross royalties) summed over paid payouts."""
        ...

    async def add_expense(
        self,
        *,
        payout_id: int,
        description: str,
        expense_type: str,
        amount: float,
        is_percentage: bool,
        percentage_rate: float,
    ) -> int: ...

    async def list_expenses(self, payout_id: int) -> list[PayoutExpense]: ...

    async def add_history(
        self,
        *,
        payout_id: int,
        from_stage: Optional[str],
        to_stage: str,
        reason: Optional[str],
        changed_by: Optional[int],
        created_at: datetime,
    ) -> None: ...

    async def list_history(self, payout_id: int) -> list[WorkflowHistoryEntry]: ...

    async def record_batch_operation(
        self,
        *,
        user_id: int,
        operation_type: str,
        payout_ids: Sequence[int],
    ) -> int: ...

    async def finish_batch_operation(self, operation_id: int, *, succeeded: int, failed: int) -> None: ...

    async def get_batch_operation(self, operation_id: int) -> Optional[BatchOperation]: ...


class BalancesRepository(Protocol):
    async def get(self, user_id: int, client_id: int) -> Optional[ClientBalance]: ...

    async def apply_payment(self, user_id: int, client_id: int, *, earned: float, paid: float) -> ClientBalance: ...
