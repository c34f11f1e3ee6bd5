from timetravel.entities.kinds import (
    KIND_SPECS,
    EntityKind,
    KindSpec,
    get_kind_spec,
    resolve_kind,
)

__all__ = ["KIND_SPECS", "EntityKind", "KindSpec", "get_kind_spec", "resolve_kind"]
