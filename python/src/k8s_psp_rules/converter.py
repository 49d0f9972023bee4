"""PSP-to-rules converter."""

from __future__ import annotations

import logging
from pathlib import Path

from .loader import load_psp_from_str
from .models import ConverterOptions, ParameterSet, default_parameters
from .renderer import render_rules

logger = logging.getLogger(__name__)


class PSPConverter:
    """Converts PodSecurityPolicy YAML into rendered rule text.

    The converter keeps the parameter set from its most recent parse.
    Each parse starts over from the permissive defaults, so nothing
    carries between documents.  An instance is not safe to share across
    threads; use one per thread.
    """

    def __init__(self, options: ConverterOptions | None = None) -> None:
        self._options = options or ConverterOptions()
        self._params = default_parameters()

    @property
    def options(self) -> ConverterOptions:
        return self._options

    @property
    def params(self) -> ParameterSet:
        """Return the parameter set from the last successful parse."""
        return self._params

    # ── Conversion ───────────────────────────────────────────────────

    def load_yaml(self, psp_yaml: str) -> ParameterSet:
        """Parse *psp_yaml* and keep the resulting parameter set.

        On failure the held set is left at the defaults rather than at
        whatever the previous document produced.
        """
        self._params = default_parameters()
        self._params = load_psp_from_str(psp_yaml, self._options)
        return self._params

    def generate_rules(self, psp_yaml: str, rules_template: str) -> str:
        """Parse *psp_yaml* then render *rules_template* against it."""
        params = self.load_yaml(psp_yaml)
        return render_rules(params, rules_template, self._options)

    def generate_rules_from_files(self, psp_path: str | Path, template_path: str | Path) -> str:
        """Convenience wrapper reading both inputs as UTF-8 text."""
        logger.debug("[psp.files] psp=%s template=%s", psp_path, template_path)
        psp_yaml = Path(psp_path).read_text(encoding="utf-8")
        rules_template = Path(template_path).read_text(encoding="utf-8")
        return self.generate_rules(psp_yaml, rules_template)
