from collections.abc import Mapping
from typing import Any
from typing import Final

from jinja2 import Environment
from jinja2 import StrictUndefined
from jinja2 import TemplateError
from pydantic import BaseModel

from imbue.toolbelt.errors import TemplateExpansionError

# Plain text output, so no HTML autoescaping
_JINJA_ENV: Final[Environment] = Environment(undefined=StrictUndefined, autoescape=False, keep_trailing_newline=True)


def expand_string_template(template: str, data: Mapping[str, Any] | BaseModel) -> str:
    """Render a Jinja2 template string, exposing the keys (or model fields) of data as names.

    Referencing a name that data does not define is an error.

    Example:
        expand_string_template("{{ one }} {{ two }}", {"one": "one", "two": "two"})  # "one two"
    """
    context = dict(data) if isinstance(data, BaseModel) else dict(data.items())
    try:
        return _JINJA_ENV.from_string(template).render(context)
    except TemplateError as e:
        raise TemplateExpansionError(f"failed to expand template: {e}") from e
