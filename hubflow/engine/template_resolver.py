"""
Template Resolver - Resolves {{var}} references against the variable scope.

Only reference tokens are substituted; all other text, including any other
"{{" or "{%" sequence, is left exactly as written. A token is a variable
path, optionally followed by :json:

- {{name}}, {{obj.key}}, {{arr[0]}}, {{a.b[0].c}}, {{arr[index]}} where
  index is itself a variable.
- Member or index access on a string value parses it as JSON first (a
  ```json fence is tolerated), so text saved by an earlier node stays
  addressable.
- Mappings and lists render as compact JSON, booleans as true/false.
- {{path:json}} renders the value JSON-escaped for embedding in a JSON
  string literal.
- An unresolved reference renders as an empty string and logs a warning.
  A malformed path such as {{arr[}} raises TemplateError.

Each path is evaluated on its own as a Jinja2 expression in a sandboxed
environment whose lookups understand workflow values.
"""

import json
import logging
import re
from functools import lru_cache
from typing import Any, Callable, Dict, Mapping

from jinja2 import ChainableUndefined, TemplateSyntaxError, Undefined
from jinja2.exceptions import SecurityError, TemplateError as JinjaTemplateError
from jinja2.sandbox import SandboxedEnvironment

from hubflow.models import NodeProperties
from hubflow.utils import parse_json_lenient, stringify_value

from .errors import TemplateError

logger = logging.getLogger('workflow.template')

MAX_PASSES = 10

_TOKEN_RE = re.compile(r'\{\{\s*([\w.\[\]]+)(:json)?\s*\}\}')
_PURE_TOKEN_RE = re.compile(r'^\s*\{\{\s*([\w.\[\]]+)\s*\}\}\s*$')


def _unwrap(obj: Any) -> Any:
    """Parse JSON text so that member access can reach into it."""
    if isinstance(obj, str):
        parsed = parse_json_lenient(obj)
        if isinstance(parsed, (dict, list)):
            return parsed
    return obj


class VariableEnvironment(SandboxedEnvironment):
    """Sandboxed environment whose lookups understand workflow values"""

    def getattr(self, obj: Any, attribute: str) -> Any:
        obj = _unwrap(obj)
        if isinstance(obj, dict):
            if attribute in obj:
                return obj[attribute]
            return self.undefined(obj=obj, name=attribute)
        if isinstance(obj, list) and attribute == "length":
            return len(obj)
        return super().getattr(obj, attribute)

    def getitem(self, obj: Any, argument: Any) -> Any:
        obj = _unwrap(obj)
        if isinstance(obj, (list, str)) and isinstance(argument, str) and argument.strip().lstrip('-').isdigit():
            argument = int(argument)
        return super().getitem(obj, argument)


_env = VariableEnvironment(undefined=ChainableUndefined)
# Paths only ever name workflow variables
_env.globals.clear()


@lru_cache(maxsize=512)
def _compile_path(path: str) -> Callable[..., Any]:
    try:
        return _env.compile_expression(path, undefined_to_none=False)
    except TemplateSyntaxError as e:
        raise TemplateError(f"Invalid template reference '{{{{{path}}}}}': {e.message}")


class TemplateResolver:
    """
    Resolves templates against one execution's variables.

    The resolver reads a live mapping, so it always sees the latest values.
    """

    def __init__(self, variables: Mapping[str, Any]):
        self._variables = variables

    def resolve(self, template: str) -> str:
        """
        Substitute every {{path}} token in template.

        Repeats until the text is stable (at most MAX_PASSES) so a variable
        holding another reference is resolved too.
        """
        if not isinstance(template, str):
            return stringify_value(template)

        text = template
        for _ in range(MAX_PASSES):
            if '{{' not in text:
                break
            rendered = _TOKEN_RE.sub(self._substitute, text)
            if rendered == text:
                break
            text = rendered
        return text

    def resolve_value(self, template: str) -> Any:
        """
        Resolve a template, keeping the native value for a pure reference.

        "{{items}}" returns the list itself; anything else resolves to text.
        """
        if not isinstance(template, str):
            return template
        match = _PURE_TOKEN_RE.match(template)
        if not match:
            return self.resolve(template)
        value = self.lookup(match.group(1))
        return '' if value is None else value

    def resolve_properties(self, properties: NodeProperties) -> NodeProperties:
        """Return a copy of properties with every template field resolved."""
        updates: Dict[str, Any] = {}
        for field_name in properties.template_fields:
            value = getattr(properties, field_name)
            if isinstance(value, str):
                updates[field_name] = self.resolve(value)
        if not updates:
            return properties
        return properties.model_copy(update=updates)

    def lookup(self, path: str) -> Any:
        """Value at a variable path, or None (with a warning) when unresolved."""
        expression = _compile_path(path)
        root = re.match(r"\w+", path)
        if root is None or root.group(0) not in self._variables:
            logger.warning(f"[TEMPLATE] Unresolved reference '{path}', rendering empty")
            return None
        try:
            value = expression(**dict(self._variables))
        except SecurityError as e:
            raise TemplateError(f"Template access denied: {e}")
        except JinjaTemplateError as e:
            raise TemplateError(f"Template reference '{path}' failed: {e}")
        if isinstance(value, Undefined):
            logger.warning(f"[TEMPLATE] Unresolved reference '{path}', rendering empty")
            return None
        return value

    def _substitute(self, match: re.Match) -> str:
        value = self.lookup(match.group(1))
        if value is None:
            return ''
        text = stringify_value(value)
        if match.group(2):
            return json.dumps(text, ensure_ascii=False)[1:-1]
        return text
