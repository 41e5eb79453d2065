from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

from .models import VisibilityScope


def _norm(values: Iterable[str]) -> set[str]:
    return {v.strip().lower() for v in values if v and v.strip()}


def _work_visible(scope: VisibilityScope, work: Any) -> bool:
    if scope.scope_type == "artist":
        return bool(_norm(work.writer_names) & _norm(scope.artists))
    if scope.scope_type == "label":
        return bool(_norm(p.publisher_name for p in work.publishers) & _norm(scope.labels))
    return work.copyright.id in scope.work_ids


def _contract_visible(scope: VisibilityScope, contract: Any) -> bool:
    if scope.scope_type == "artist":
        names = [contract.counterparty_name] + [p.name for p in contract.royalty_splits]
        return bool(_norm(names) & _norm(scope.artists))
    if scope.scope_type == "label":
        return contract.counterparty_name.strip().lower() in _norm(scope.labels)
    return contract.id in scope.contract_ids


def _royalty_visible(scope: VisibilityScope, allocation: Any, visible_work_ids: set[int]) -> bool:
    if scope.scope_type == "artist":
        if allocation.artist and allocation.artist.strip().lower() in _norm(scope.artists):
            return True
        return allocation.copyright_id in visible_work_ids
    if scope.scope_type == "label":
        return allocation.copyright_id in visible_work_ids
    return allocation.id in scope.royalty_ids


def _sync_visible(scope: VisibilityScope, license: Any, visible_work_ids: set[int]) -> bool:
    if scope.scope_type == "custom":
        return license.id in scope.sync_ids
    return bool(set(license.linked_copyright_ids) & visible_work_ids)


def filter_by_scope(
    scope: VisibilityScope,
    data_type: str,
    rows: Sequence[Any],
    *,
    visible_work_ids: Optional[Iterable[int]] = None,
) -> list[Any]:
    """Narrows rows already associated with a client to what the client's scope shows.

    Royalty and sync rows under artist or label scopes follow the works that
    scope makes visible.
    """
    if scope.scope_type == "all":
        return list(rows)
    work_ids = set(visible_work_ids or ())
    if data_type == "copyright":
        return [r for r in rows if _work_visible(scope, r)]
    if data_type == "contract":
        return [r for r in rows if _contract_visible(scope, r)]
    if data_type == "royalty_allocation":
        return [r for r in rows if _royalty_visible(scope, r, work_ids)]
    if data_type == "sync_license":
        return [r for r in rows if _sync_visible(scope, r, work_ids)]
    raise ValueError(f"Unknown data type: {data_type}")
