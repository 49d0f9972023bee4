"""Data models for k8s-psp-rules."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """The phase or check that produced a :class:`PSPConversionError`."""

    missing_field = "missing_field"
    unexpected_kind = "unexpected_kind"
    invalid_rule = "invalid_rule"
    yaml_syntax = "yaml_syntax"
    type_conversion = "type_conversion"
    template = "template"


class PSPConversionError(ValueError):
    """Raised when a PSP document cannot be converted or rendered."""

    def __init__(self, message: str, kind: ErrorKind) -> None:
        super().__init__(message)
        self.kind = kind


# ── Rule enums ───────────────────────────────────────────────────────────


class GroupRule(str, Enum):
    """Rule values accepted by fsGroup, runAsGroup and supplementalGroups."""

    must_run_as = "MustRunAs"
    may_run_as = "MayRunAs"
    run_as_any = "RunAsAny"


class UserRule(str, Enum):
    """Rule values accepted by runAsUser."""

    must_run_as = "MustRunAs"
    must_run_as_non_root = "MustRunAsNonRoot"
    run_as_any = "RunAsAny"


# ── Configuration ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConverterOptions:
    """Knobs for parsing and rendering.

    ``no_value`` is the absence sentinel appended to lists whose field a
    workload may leave unset.  It must never equal a legitimate value.
    """

    no_value: str = "<NA>"
    images_annotation: str = "falco-rules-psp-images"
    line_statement_prefix: str = "DO_NOT_USE_LINE_STATEMENTS"
    strict_undefined: bool = True


# ── Parameter set ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Range:
    """An inclusive min/max pair bounding a UID, GID or port."""

    min: str
    max: str

    def joined(self) -> str:
        return f"{self.min}:{self.max}"

    def as_dict(self) -> dict[str, str]:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class ParameterSet:
    """Template parameters derived from a PodSecurityPolicy.

    The defaults describe the most permissive policy, so a control the
    PSP leaves out still resolves to an explicit value.  Field order is
    the key order exposed to templates.
    """

    policy_name: str = "unknown"
    image_list: tuple[str, ...] = ()
    allow_privileged: bool = True
    allow_host_pid: bool = True
    allow_host_ipc: bool = True
    allow_host_network: bool = True
    host_network_ports: tuple[str, ...] = ()
    allowed_volume_types: tuple[str, ...] = ()
    allowed_flexvolume_drivers: tuple[str, ...] = ()
    allowed_host_paths: tuple[str, ...] = ()
    must_run_fs_groups: tuple[str, ...] = ()
    may_run_fs_groups: tuple[str, ...] = ()
    must_run_as_users: tuple[str, ...] = ()
    must_run_as_users_objs: tuple[Range, ...] = ()
    must_run_as_non_root: bool = False
    must_run_as_groups: tuple[str, ...] = ()
    must_run_as_groups_objs: tuple[Range, ...] = ()
    may_run_as_groups: tuple[str, ...] = ()
    read_only_root_filesystem: bool = False
    must_run_supplemental_groups: tuple[str, ...] = ()
    may_run_supplemental_groups: tuple[str, ...] = ()
    allow_privilege_escalation: bool = True
    allowed_capabilities: tuple[str, ...] = ()
    allowed_proc_mount_types: tuple[str, ...] = ()

    @classmethod
    def keys(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def to_dict(self) -> dict[str, Any]:
        """Return the template context: plain lists, ranges as dicts."""
        out: dict[str, Any] = {}
        for name in self.keys():
            value = getattr(self, name)
            if isinstance(value, tuple):
                value = [v.as_dict() if isinstance(v, Range) else v for v in value]
            out[name] = value
        return out

    def overrides(self) -> dict[str, Any]:
        """Return only the keys whose values differ from the defaults."""
        baseline = default_parameters().to_dict()
        return {k: v for k, v in self.to_dict().items() if baseline[k] != v}


def default_parameters() -> ParameterSet:
    """Return the fully permissive parameter set."""
    return ParameterSet()

