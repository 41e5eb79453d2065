import yaml
from pathlib import Path

from ..domain.royalties.mapping import SOURCES, MappingTable


def load_mapping_overrides(path: str) -> MappingTable:
    """Reads a statement column mapping shaped like ``DEFAULT_MAPPING``.

    Top-level keys are standard fields, nested keys are statement sources and
    values are a header name or a list of candidate headers.
    """
    p = Path(path)
    if not p.exists():
        raise RuntimeError(f"mapping file not found: {path}")

    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise RuntimeError("Invalid mapping file format")

    table: MappingTable = {}
    for field_name, per_source in data.items():
        if not isinstance(per_source, dict):
            raise RuntimeError(f"Mapping for {field_name} must be a mapping of sources")
        entry = {}
        for source, headers in per_source.items():
            if source not in SOURCES:
                raise RuntimeError(f"Unknown statement source {source} for {field_name}")
            if headers is None:
                headers = ""
            if isinstance(headers, list):
                headers = [str(h).strip() for h in headers]
            elif isinstance(headers, str):
                headers = headers.strip()
            else:
                raise RuntimeError(f"Invalid headers for {field_name}/{source}: {headers}")
            entry[source] = headers
        table[str(field_name)] = entry
    return table
