"""``{{ .Name }}`` template expansion for step arguments."""

import re
from typing import Mapping

from arbor.exceptions import TemplateError

_REFERENCE = re.compile(r"\{\{\s*\.([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def expand(template: str, values: Mapping[str, str]) -> str:
    """Expand every ``{{ .Name }}`` in ``template`` from ``values``.

    Whitespace inside the braces is ignored.

    Raises:
        TemplateError: If a name is not in ``values`` or a ``{{ ... }}``
            block is not a simple reference
    """
    if "{{" not in template:
        return template

    def replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in values:
            raise TemplateError(f"unknown template variable '{name}' in {template!r}")
        return str(values[name])

    result = _REFERENCE.sub(replace, template)
    leftover = _REFERENCE.sub("", template)
    if "{{" in leftover or "}}" in leftover:
        raise TemplateError(f"malformed template {template!r}")
    return result
