from __future__ import annotations

import json
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional

from ..domain.accounts.models import Session, User, UserRole
from ..domain.billing.models import CheckoutSession
from ..domain.contracts.models import Contract, ContractParty, ContractStatus, ContractType, RecoupmentStatus
from ..domain.copyright.models import (
    Copyright,
    CopyrightExport,
    CopyrightPublisher,
    CopyrightRecording,
    CopyrightWriter,
)
from ..domain.portal.models import (
    AccessStatus,
    DataAssociation,
    Invitation,
    InvitationStatus,
    PortalAccess,
    VisibilityScope,
)
from ..domain.royalties.models import (
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
from ..domain.security.models import RateLimitEntry, SecurityEvent, Severity
from ..domain.sync.models import FeeAllocation, SyncLicense
from ..domain.tenants.models import BrandConfig, Tenant, TenantStatus
from ..domain.valuation.revenue import RevenueSource


def _coerce(mapping: Mapping[str, Any], key: str, default: Any = None) -> Any:
    value = mapping.get(key, default)
    return value if value is not None else default


def to_iso(value: Optional[datetime | date]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")
    return value.isoformat()


def parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace(" ", "T"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def dump_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def load_json(value: Any, default: Any) -> Any:
    if value in (None, ""):
        return default
    return json.loads(value)


def _float(row: Mapping[str, Any], key: str) -> float:
    return float(_coerce(row, key, 0.0) or 0.0)


def _opt_int(row: Mapping[str, Any], key: str) -> Optional[int]:
    value = row.get(key)
    return int(value) if value is not None else None


def user_from_row(row: Mapping[str, Any]) -> User:
    return User(
        id=int(row["id"]),
        email=str(row["email"]),
        full_name=str(_coerce(row, "full_name", "")),
        role=UserRole(row["role"]),
        password_hash=str(row["password_hash"]),
        is_demo=bool(row.get("is_demo")),
        avatar_url=row.get("avatar_url"),
        tg_user_id=_opt_int(row, "tg_user_id"),
        created_at=parse_datetime(row.get("created_at")),
    )


def session_from_row(row: Mapping[str, Any]) -> Session:
    return Session(
        token=str(row["token"]),
        user_id=int(row["user_id"]),
        expires_at=parse_datetime(row["expires_at"]),
    )


def rate_limit_from_row(row: Mapping[str, Any]) -> RateLimitEntry:
    return RateLimitEntry(
        identifier=str(row["identifier"]),
        action_type=str(row["action_type"]),
        attempt_count=int(row["attempt_count"]),
        first_attempt=parse_datetime(row["first_attempt"]),
        last_attempt=parse_datetime(row["last_attempt"]),
        blocked_until=parse_datetime(row.get("blocked_until")),
    )


def security_event_from_row(row: Mapping[str, Any]) -> SecurityEvent:
    return SecurityEvent(
        id=int(row["id"]),
        event_type=str(row["event_type"]),
        severity=Severity(row["severity"]),
        created_at=parse_datetime(row["created_at"]),
        user_id=_opt_int(row, "user_id"),
        event_data=load_json(row.get("event_data"), {}),
        ip_address=row.get("ip_address"),
        user_agent=row.get("user_agent"),
    )


def copyright_from_row(row: Mapping[str, Any]) -> Copyright:
    return Copyright(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        internal_id=str(row["internal_id"]),
        work_title=str(row["work_title"]),
        work_type=str(_coerce(row, "work_type", "ORI")),
        iswc=row.get("iswc"),
        language_code=row.get("language_code"),
        duration_seconds=_opt_int(row, "duration_seconds"),
        status=str(_coerce(row, "status", "draft")),
        akas=tuple(load_json(row.get("akas"), [])),
        validation_status=str(_coerce(row, "validation_status", "pending")),
        created_at=parse_datetime(row.get("created_at")),
    )


def writer_from_row(row: Mapping[str, Any]) -> CopyrightWriter:
    return CopyrightWriter(
        id=int(row["id"]),
        copyright_id=int(row["copyright_id"]),
        writer_name=str(row["writer_name"]),
        writer_role=str(_coerce(row, "writer_role", "composer")),
        controlled_status=str(_coerce(row, "controlled_status", "NC")),
        ownership_percentage=_float(row, "ownership_percentage"),
        ipi_number=row.get("ipi_number"),
        performance_share=_float(row, "performance_share"),
        mechanical_share=_float(row, "mechanical_share"),
        synchronization_share=_float(row, "synchronization_share"),
        print_share=_float(row, "print_share"),
    )


def publisher_from_row(row: Mapping[str, Any]) -> CopyrightPublisher:
    return CopyrightPublisher(
        id=int(row["id"]),
        copyright_id=int(row["copyright_id"]),
        publisher_name=str(row["publisher_name"]),
        publisher_role=str(_coerce(row, "publisher_role", "E ")),
        ownership_percentage=_float(row, "ownership_percentage"),
        ipi_number=row.get("ipi_number"),
        performance_share=_float(row, "performance_share"),
        mechanical_share=_float(row, "mechanical_share"),
        synchronization_share=_float(row, "synchronization_share"),
        print_share=_float(row, "print_share"),
    )


def recording_from_row(row: Mapping[str, Any]) -> CopyrightRecording:
    return CopyrightRecording(
        id=int(row["id"]),
        copyright_id=int(row["copyright_id"]),
        isrc=row.get("isrc"),
        recording_title=row.get("recording_title"),
        artist_name=row.get("artist_name"),
        duration_seconds=_opt_int(row, "duration_seconds"),
        release_date=row.get("release_date"),
    )


def copyright_export_from_row(row: Mapping[str, Any]) -> CopyrightExport:
    return CopyrightExport(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        filename=str(row["filename"]),
        work_ids=tuple(int(i) for i in load_json(row.get("work_ids"), [])),
        record_count=int(_coerce(row, "record_count", 0)),
        content=str(_coerce(row, "content", "")),
        created_at=parse_datetime(row.get("created_at")),
    )


def contract_from_row(row: Mapping[str, Any]) -> Contract:
    return Contract(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        title=str(row["title"]),
        counterparty_name=str(_coerce(row, "counterparty_name", "")),
        contract_type=ContractType(row["contract_type"]),
        contract_status=ContractStatus(row["contract_status"]),
        start_date=parse_date(row.get("start_date")),
        end_date=parse_date(row.get("end_date")),
        advance_amount=_float(row, "advance_amount"),
        commission_percentage=_float(row, "commission_percentage"),
        controlled_percentage=_float(row, "controlled_percentage"),
        territories=tuple(load_json(row.get("territories"), [])),
        royalty_splits=tuple(ContractParty.from_dict(p) for p in load_json(row.get("royalty_splits"), [])),
        recoupment_status=RecoupmentStatus(_coerce(row, "recoupment_status", "none")),
        advance_balance=_float(row, "advance_balance"),
        w9_url=row.get("w9_url"),
        direct_deposit_auth_url=row.get("direct_deposit_auth_url"),
        created_at=parse_datetime(row.get("created_at")),
        updated_at=parse_datetime(row.get("updated_at")),
    )


def staging_from_row(row: Mapping[str, Any]) -> ImportStaging:
    return ImportStaging(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        filename=str(row["filename"]),
        detected_source=str(_coerce(row, "detected_source", "Unknown")),
        raw_data=load_json(row.get("raw_data"), []),
        mapped_data=load_json(row.get("mapped_data"), []),
        unmapped_fields=load_json(row.get("unmapped_fields"), []),
        validation_errors=load_json(row.get("validation_errors"), []),
        validation_status=str(_coerce(row, "validation_status", "pending")),
        processing_status=ProcessingStatus(_coerce(row, "processing_status", "pending")),
        batch_id=_opt_int(row, "batch_id"),
        created_at=parse_datetime(row.get("created_at")),
    )


def allocation_from_row(row: Mapping[str, Any]) -> RoyaltyAllocation:
    return RoyaltyAllocation(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        song_title=str(_coerce(row, "song_title", "")),
        gross_amount=_float(row, "gross_amount"),
        staging_id=_opt_int(row, "staging_id"),
        batch_id=_opt_int(row, "batch_id"),
        copyright_id=_opt_int(row, "copyright_id"),
        client_id=_opt_int(row, "client_id"),
        artist=row.get("artist"),
        iswc=row.get("iswc"),
        work_id=row.get("work_id"),
        source=row.get("source"),
        royalty_type=row.get("royalty_type"),
        country=row.get("country"),
        share_percentage=row.get("share_percentage"),
        period_start=row.get("period_start"),
        period_end=row.get("period_end"),
        payment_date=row.get("payment_date"),
        comments=row.get("comments"),
        ownership_splits=load_json(row.get("ownership_splits"), {}),
        is_split=bool(row.get("is_split")),
        parent_allocation_id=_opt_int(row, "parent_allocation_id"),
        created_at=parse_datetime(row.get("created_at")),
    )


def batch_from_row(row: Mapping[str, Any]) -> ReconciliationBatch:
    return ReconciliationBatch(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        batch_id=str(row["batch_id"]),
        source=str(_coerce(row, "source", "")),
        statement_total=_float(row, "statement_total"),
        status=BatchStatus(_coerce(row, "status", "Pending")),
        period=row.get("period"),
        date_received=parse_date(row.get("date_received")),
        created_at=parse_datetime(row.get("created_at")),
    )


def payout_from_row(row: Mapping[str, Any]) -> Payout:
    return Payout(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        client_id=int(row["client_id"]),
        period_start=str(row["period_start"]),
        period_end=str(row["period_end"]),
        gross_royalties=_float(row, "gross_royalties"),
        total_expenses=_float(row, "total_expenses"),
        net_payable=_float(row, "net_payable"),
        amount_due=_float(row, "amount_due"),
        royalties_to_date=_float(row, "royalties_to_date"),
        payments_to_date=_float(row, "payments_to_date"),
        payment_method=row.get("payment_method"),
        payment_reference=row.get("payment_reference"),
        workflow_stage=PayoutStage(_coerce(row, "workflow_stage", "draft")),
        status=str(_coerce(row, "status", "pending")),
        notes=row.get("notes"),
        failure_reason=row.get("failure_reason"),
        paid_at=parse_datetime(row.get("paid_at")),
        created_at=parse_datetime(row.get("created_at")),
    )


def expense_from_row(row: Mapping[str, Any]) -> PayoutExpense:
    return PayoutExpense(
        id=int(row["id"]),
        payout_id=int(row["payout_id"]),
        description=str(_coerce(row, "description", "")),
        expense_type=str(_coerce(row, "expense_type", "other")),
        amount=_float(row, "amount"),
        is_percentage=bool(row.get("is_percentage")),
        percentage_rate=_float(row, "percentage_rate"),
    )


def history_from_row(row: Mapping[str, Any]) -> WorkflowHistoryEntry:
    return WorkflowHistoryEntry(
        id=int(row["id"]),
        payout_id=int(row["payout_id"]),
        from_stage=row.get("from_stage"),
        to_stage=str(row["to_stage"]),
        reason=row.get("reason"),
        changed_by=_opt_int(row, "changed_by"),
        created_at=parse_datetime(row.get("created_at")),
    )


def balance_from_row(row: Mapping[str, Any]) -> ClientBalance:
    return ClientBalance(
        user_id=int(row["user_id"]),
        client_id=int(row["client_id"]),
        total_earned=_float(row, "total_earned"),
        total_paid=_float(row, "total_paid"),
        current_balance=_float(row, "current_balance"),
    )


def batch_operation_from_row(row: Mapping[str, Any]) -> BatchOperation:
    return BatchOperation(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        operation_type=str(row["operation_type"]),
        payout_ids=tuple(int(i) for i in load_json(row.get("payout_ids"), [])),
        total_count=int(_coerce(row, "total_count", 0)),
        succeeded=int(_coerce(row, "succeeded", 0)),
        failed=int(_coerce(row, "failed", 0)),
        status=str(_coerce(row, "status", "pending")),
        created_at=parse_datetime(row.get("created_at")),
    )


def sync_license_from_row(row: Mapping[str, Any]) -> SyncLicense:
    return SyncLicense(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        synch_id=str(row["synch_id"]),
        project_title=str(row["project_title"]),
        media_type=str(_coerce(row, "media_type", "Other")),
        synch_status=str(_coerce(row, "synch_status", "Inquiry")),
        payment_status=str(_coerce(row, "payment_status", "Pending")),
        invoice_status=str(_coerce(row, "invoice_status", "Not Issued")),
        sync_type=str(_coerce(row, "sync_type", "one_time")),
        synch_agent=row.get("synch_agent"),
        licensee_name=row.get("licensee_name"),
        pub_fee=_float(row, "pub_fee"),
        master_fee=_float(row, "master_fee"),
        currency=str(_coerce(row, "currency", "USD")),
        term_start=parse_date(row.get("term_start")),
        term_end=parse_date(row.get("term_end")),
        territories=tuple(load_json(row.get("territories"), [])),
        linked_copyright_ids=tuple(int(i) for i in load_json(row.get("linked_copyright_ids"), [])),
        pub_share_percentage=float(_coerce(row, "pub_share_percentage", 100.0)),
        master_share_percentage=_float(row, "master_share_percentage"),
        fee_allocations=tuple(FeeAllocation.from_dict(a) for a in load_json(row.get("fee_allocations"), [])),
        invoiced_amount=_float(row, "invoiced_amount"),
        payment_received=_float(row, "payment_received"),
        notes=row.get("notes"),
        created_at=parse_datetime(row.get("created_at")),
    )


def revenue_source_from_db_row(row: Mapping[str, Any]) -> RevenueSource:
    return RevenueSource(
        id=int(row["id"]),
        revenue_type=str(row["revenue_type"]),
        revenue_source=str(_coerce(row, "revenue_source", "")),
        annual_revenue=_float(row, "annual_revenue"),
        currency=str(_coerce(row, "currency", "USD")),
        growth_rate=_float(row, "growth_rate"),
        confidence_level=str(_coerce(row, "confidence_level", "medium")),
        is_recurring=bool(row.get("is_recurring")),
        start_date=row.get("start_date"),
        end_date=row.get("end_date"),
        notes=row.get("notes"),
    )


def invitation_from_row(row: Mapping[str, Any]) -> Invitation:
    return Invitation(
        id=int(row["id"]),
        subscriber_user_id=int(row["subscriber_user_id"]),
        email=str(row["email"]),
        token=str(row["token"]),
        expires_at=parse_datetime(row["expires_at"]),
        role=str(_coerce(row, "role", "client")),
        permissions=load_json(row.get("permissions"), {}),
        status=InvitationStatus(_coerce(row, "status", "pending")),
        reminder_count=int(_coerce(row, "reminder_count", 0)),
        reminder_sent_at=parse_datetime(row.get("reminder_sent_at")),
        accepted_at=parse_datetime(row.get("accepted_at")),
        accepted_by=_opt_int(row, "accepted_by"),
        created_at=parse_datetime(row.get("created_at")),
    )


def access_from_row(row: Mapping[str, Any]) -> PortalAccess:
    return PortalAccess(
        id=int(row["id"]),
        subscriber_user_id=int(row["subscriber_user_id"]),
        client_user_id=int(row["client_user_id"]),
        role=str(_coerce(row, "role", "client")),
        status=AccessStatus(_coerce(row, "status", "active")),
        permissions=load_json(row.get("permissions"), {}),
        visibility_scope=VisibilityScope.from_dict(load_json(row.get("visibility_scope"), None)),
        expires_at=parse_datetime(row.get("expires_at")),
        created_at=parse_datetime(row.get("created_at")),
    )


def association_from_row(row: Mapping[str, Any]) -> DataAssociation:
    return DataAssociation(
        id=int(row["id"]),
        subscriber_user_id=int(row["subscriber_user_id"]),
        client_user_id=int(row["client_user_id"]),
        data_type=str(row["data_type"]),
        data_id=int(row["data_id"]),
        created_at=parse_datetime(row.get("created_at")),
    )


def tenant_from_row(row: Mapping[str, Any]) -> Tenant:
    return Tenant(
        id=int(row["id"]),
        slug=str(row["slug"]),
        display_name=str(row["display_name"]),
        subdomain=str(_coerce(row, "subdomain", row["slug"])),
        brand_config=BrandConfig.from_dict(load_json(row.get("brand_config"), {})),
        enabled_modules=tuple(load_json(row.get("enabled_modules"), [])),
        status=TenantStatus(_coerce(row, "status", "active")),
    )


def checkout_session_from_row(row: Mapping[str, Any]) -> CheckoutSession:
    return CheckoutSession(
        id=int(row["id"]),
        session_id=str(row["session_id"]),
        user_id=int(row["user_id"]),
        email=str(row["email"]),
        product_type=str(row["product_type"]),
        product_id=str(row["product_id"]),
        interval=str(row["billing_interval"]),
        product_name=str(_coerce(row, "product_name", "")),
        amount_cents=int(row["amount_cents"]),
        currency=str(_coerce(row, "currency", "usd")),
        url=str(row["url"]),
        success_url=str(row["success_url"]),
        cancel_url=str(row["cancel_url"]),
        trial_days=int(_coerce(row, "trial_days", 0)),
        trial_modules=tuple(load_json(row.get("trial_modules"), [])),
        status=str(_coerce(row, "status", "open")),
        created_at=parse_datetime(row.get("created_at")),
    )
