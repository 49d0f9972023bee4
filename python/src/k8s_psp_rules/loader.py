"""YAML/dict loader turning PodSecurityPolicy documents into ParameterSets."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from .models import (
    ConverterOptions,
    ErrorKind,
    GroupRule,
    ParameterSet,
    PSPConversionError,
    UserRule,
    default_parameters,
)
from .ranges import (
    as_bool,
    as_mapping,
    as_str,
    conversion_error,
    parse_field_sequence,
    parse_ranges,
    parse_sequence,
)

logger = logging.getLogger(__name__)

PARSE_PREFIX = "Could not parse PSP Yaml Document: "

_NUMERIC_TAGS = ("tag:yaml.org,2002:int", "tag:yaml.org,2002:float")


class _TextScalarLoader(yaml.SafeLoader):
    """SafeLoader that leaves numeric scalars as their source text.

    UIDs, GIDs and ports are passed to templates as written (``0x50``
    stays ``0x50``); booleans and nulls still resolve.
    """


_TextScalarLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _NUMERIC_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _load_yaml(text: str) -> Any:
    return yaml.load(text, Loader=_TextScalarLoader)

# spec key -> parameter key
_TOGGLES = {
    "privileged": "allow_privileged",
    "hostPID": "allow_host_pid",
    "hostIPC": "allow_host_ipc",
    "hostNetwork": "allow_host_network",
    "readOnlyRootFilesystem": "read_only_root_filesystem",
    "allowPrivilegeEscalation": "allow_privilege_escalation",
}

# rule-typed controls: spec key -> (must key, must objs key, may key)
_GROUP_CONTROLS = {
    "fsGroup": ("must_run_fs_groups", None, "may_run_fs_groups"),
    "runAsGroup": ("must_run_as_groups", "must_run_as_groups_objs", "may_run_as_groups"),
    "supplementalGroups": ("must_run_supplemental_groups", None, "may_run_supplemental_groups"),
}


def _parse_error(detail: str, kind: ErrorKind) -> PSPConversionError:
    return PSPConversionError(PARSE_PREFIX + detail, kind)


def _missing(detail: str) -> PSPConversionError:
    return _parse_error(f"PSP Yaml Document does not have {detail}", ErrorKind.missing_field)


def _invalid_rule(field: str, rule: str, valid: type[GroupRule] | type[UserRule]) -> PSPConversionError:
    choices = "/".join(r.value for r in valid)
    return _parse_error(
        f'{field} rule "{rule}" was not one of {choices}', ErrorKind.invalid_rule
    )


def _parse_images(metadata: dict[str, Any], annotation: str) -> list[str]:
    annotations = metadata.get("annotations")
    if not isinstance(annotations, dict) or annotations.get(annotation) is None:
        raise _missing(
            f'an annotation "{annotation}" that lists the images '
            "for which the generated rules should apply"
        )
    images = annotations[annotation]
    path = f"metadata.annotations.{annotation}"
    # Annotation values are strings in Kubernetes, so accept a flow sequence
    # written as text, e.g. "[nginx, busybox]".
    if isinstance(images, str):
        try:
            images = _load_yaml(images)
        except yaml.YAMLError as exc:
            raise conversion_error(path, "a sequence of images", annotations[annotation]) from exc
    if not isinstance(images, list):
        raise conversion_error(path, "a sequence of images", annotations[annotation])
    return parse_sequence(images, path)


def _parse_rule(control: dict[str, Any], field: str) -> str:
    return as_str(control.get("rule"), f"spec.{field}.rule")


def _parse_group_control(
    spec: dict[str, Any], field: str, out: dict[str, Any], no_value: str
) -> None:
    control = as_mapping(spec[field], f"spec.{field}")
    rule = _parse_rule(control, field)
    must_key, objs_key, may_key = _GROUP_CONTROLS[field]
    path = f"spec.{field}.ranges"
    logger.debug("[psp.rule] field=%s rule=%s", field, rule)

    if rule == GroupRule.must_run_as:
        # No sentinel: a value in range must be supplied.
        out[must_key] = parse_ranges(control.get("ranges"), path=path)
        if objs_key is not None:
            out[objs_key] = parse_ranges(control.get("ranges"), create_objects=True, path=path)
    elif rule == GroupRule.may_run_as:
        out[may_key] = parse_ranges(control.get("ranges"), path=path) + [no_value]
    elif rule == GroupRule.run_as_any:
        pass
    else:
        raise _invalid_rule(field, rule, GroupRule)


def _parse_run_as_user(spec: dict[str, Any], out: dict[str, Any]) -> None:
    control = as_mapping(spec["runAsUser"], "spec.runAsUser")
    rule = _parse_rule(control, "runAsUser")
    path = "spec.runAsUser.ranges"
    logger.debug("[psp.rule] field=runAsUser rule=%s", rule)

    if rule == UserRule.must_run_as:
        out["must_run_as_users"] = parse_ranges(control.get("ranges"), path=path)
        out["must_run_as_users_objs"] = parse_ranges(
            control.get("ranges"), create_objects=True, path=path
        )
    elif rule == UserRule.must_run_as_non_root:
        out["must_run_as_non_root"] = True
    elif rule == UserRule.run_as_any:
        pass
    else:
        raise _invalid_rule("runAsUser", rule, UserRule)


def _parse_toggle(spec: dict[str, Any], key: str, out: dict[str, Any]) -> None:
    if key in spec:
        out[_TOGGLES[key]] = as_bool(spec[key], f"spec.{key}")


def _parse_spec(spec: dict[str, Any], out: dict[str, Any], no_value: str) -> None:
    # Field order decides which error a document with several problems
    # reports.  A workload that leaves a list field unset is still
    # compliant, so the sentinel joins those lists.
    for key in ("privileged", "hostPID", "hostIPC", "hostNetwork"):
        _parse_toggle(spec, key, out)

    if "hostPorts" in spec:
        out["host_network_ports"] = parse_ranges(spec["hostPorts"], path="spec.hostPorts") + [no_value]
    if "volumes" in spec:
        out["allowed_volume_types"] = parse_sequence(spec["volumes"], "spec.volumes") + [no_value]
    if "allowedHostPaths" in spec:
        out["allowed_host_paths"] = parse_field_sequence(
            spec["allowedHostPaths"], "pathPrefix", "spec.allowedHostPaths"
        ) + [no_value]
    if "allowedFlexVolumes" in spec:
        out["allowed_flexvolume_drivers"] = parse_field_sequence(
            spec["allowedFlexVolumes"], "driver", "spec.allowedFlexVolumes"
        ) + [no_value]

    if "fsGroup" in spec:
        _parse_group_control(spec, "fsGroup", out, no_value)
    if "runAsUser" in spec:
        _parse_run_as_user(spec, out)
    if "runAsGroup" in spec:
        _parse_group_control(spec, "runAsGroup", out, no_value)
    _parse_toggle(spec, "readOnlyRootFilesystem", out)
    if "supplementalGroups" in spec:
        _parse_group_control(spec, "supplementalGroups", out, no_value)
    _parse_toggle(spec, "allowPrivilegeEscalation", out)

    if "allowedCapabilities" in spec:
        out["allowed_capabilities"] = parse_sequence(
            spec["allowedCapabilities"], "spec.allowedCapabilities"
        ) + [no_value]
    if "allowedProcMountTypes" in spec:
        out["allowed_proc_mount_types"] = parse_sequence(
            spec["allowedProcMountTypes"], "spec.allowedProcMountTypes"
        ) + [no_value]


def load_psp_from_dict(
    data: Any, options: ConverterOptions | None = None
) -> ParameterSet:
    """Build a ParameterSet from a parsed PSP document.

    Validation is fail-fast: the first structural, enum or conversion
    problem raises :class:`PSPConversionError` and nothing is returned.
    """
    opts = options or ConverterOptions()
    if not isinstance(data, dict) or "kind" not in data:
        raise _missing("kind: PodSecurityPolicy")
    if data["kind"] != "PodSecurityPolicy":
        raise _parse_error(
            f"PSP Yaml Document does not have kind: PodSecurityPolicy (got {data['kind']!r})",
            ErrorKind.unexpected_kind,
        )

    metadata = data.get("metadata")
    if metadata is None:
        raise _missing("metadata property")
    metadata = as_mapping(metadata, "metadata")
    if "name" not in metadata:
        raise _missing("metadata: name")

    out: dict[str, Any] = {
        "policy_name": as_str(metadata["name"], "metadata.name"),
        "image_list": _parse_images(metadata, opts.images_annotation),
    }

    if "spec" not in data:
        raise _missing("spec property")
    spec = data["spec"]
    if spec is None:
        spec = {}
    _parse_spec(as_mapping(spec, "spec"), out, opts.no_value)

    frozen = {k: tuple(v) if isinstance(v, list) else v for k, v in out.items()}
    params = replace(default_parameters(), **frozen)
    logger.debug(
        "[psp.parse] policy=%s images=%d overrides=%d",
        params.policy_name,
        len(params.image_list),
        len(out),
    )
    return params


def load_psp_from_str(text: str, options: ConverterOptions | None = None) -> ParameterSet:
    """Parse a ParameterSet from PSP YAML text."""
    try:
        data = _load_yaml(text)
    except yaml.YAMLError as exc:
        raise _parse_error(str(exc), ErrorKind.yaml_syntax) from exc
    return load_psp_from_dict(data, options)


def load_psp(path: str | Path, options: ConverterOptions | None = None) -> ParameterSet:
    """Load a ParameterSet from a PSP YAML file on disk."""
    p = Path(path)
    return load_psp_from_str(p.read_text(encoding="utf-8"), options)
