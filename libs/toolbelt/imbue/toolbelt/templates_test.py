import pytest
from pydantic import BaseModel

from imbue.toolbelt.errors import TemplateExpansionError
from imbue.toolbelt.templates import expand_string_template


class _Names(BaseModel):
    one: str
    two: str


def test_expand_string_template_with_mapping() -> None:
    assert expand_string_template("{{ one }} {{ two }}", {"one": "one", "two": "two"}) == "one two"


def test_expand_string_template_with_model() -> None:
    assert expand_string_template("{{ one }}-{{ two }}", _Names(one="a", two="b")) == "a-b"


def test_expand_string_template_does_not_escape_html() -> None:
    assert expand_string_template("{{ value }}", {"value": "<b>&</b>"}) == "<b>&</b>"


def test_expand_string_template_raises_on_undefined_name() -> None:
    with pytest.raises(TemplateExpansionError, match="failed to expand template"):
        expand_string_template("{{ missing }}", {"one": "one"})


def test_expand_string_template_raises_on_syntax_error() -> None:
    with pytest.raises(TemplateExpansionError):
        expand_string_template("{{ one ", {"one": "one"})
