"""k8s-psp-rules: Generate runtime security rules from Kubernetes PodSecurityPolicies."""

from __future__ import annotations

__version__ = "0.1.0"

from .converter import PSPConverter
from .loader import load_psp, load_psp_from_dict, load_psp_from_str
from .models import (
    ConverterOptions,
    ErrorKind,
    GroupRule,
    ParameterSet,
    PSPConversionError,
    Range,
    UserRule,
    default_parameters,
)
from .ranges import parse_ranges, parse_sequence
from .renderer import create_environment, items_join, render_rules

__all__ = [
    "ConverterOptions",
    "ErrorKind",
    "GroupRule",
    "PSPConversionError",
    "PSPConverter",
    "ParameterSet",
    "Range",
    "UserRule",
    "create_environment",
    "default_parameters",
    "items_join",
    "load_psp",
    "load_psp_from_dict",
    "load_psp_from_str",
    "parse_ranges",
    "parse_sequence",
    "render_rules",
]
