"""
Runtime fragment generation.

Renders the Python code that an instrumented unit executes at import time:
the counter/name/line state of the unit, a manual collection function and,
when a period is configured, the start of the periodic collection thread.
Rendering is a pure function of its inputs so generated text can be
compared byte for byte.
"""

from typing import Sequence

import jinja2

from funccover.util.application.exceptions import TemplateError

from .records import FunctionRecord
from .splicer import runtime_name

RUNTIME_MODULE = "funccover"
RUNTIME_ALIAS = "_covcollect"
RUNTIME_IMPORT = "from %s import covcollect as %s" % (RUNTIME_MODULE, RUNTIME_ALIAS)

env = jinja2.Environment(
    keep_trailing_newline=True,
    undefined=jinja2.StrictUndefined,
)
# Python literal of a value; names and paths may hold quotes and backslashes.
env.filters["literal"] = repr

reference_template = env.from_string(
    "{{ runtime }} = {{ alias }}.unit({{ suffix|literal }}, {{ count }})\n"
)

declaration_template = env.from_string(
    '''\
# funccover: {{ records|length }} functions
{{ runtime }} = {{ alias }}.unit({{ suffix|literal }}, {{ records|length }})
{{ runtime }}.describe(
    names=[
{%- for r in records %}
        {{ r.name|literal }},
{%- endfor %}
    ],
    lines=[
{%- for r in records %}
        {{ r.line }},
{%- endfor %}
    ],
)


def collect_coverage_{{ suffix }}(path={{ output|literal }}):
    """Write the function coverage collected so far to ``path``."""
    {{ runtime }}.collect(path)

{% if period > 0 -%}
{{ runtime }}.periodical_collect({{ period|float|literal }}, {{ output|literal }})
{% endif -%}
{% if signals -%}
{{ runtime }}.collect_on_signal({{ output|literal }})
{% endif -%}
'''
)


def _render(template, **context):
    try:
        return template.render(**context)
    except jinja2.TemplateError as e:
        raise TemplateError("runtime fragment failed to render: %s" % e)


def render_reference(suffix: str, count: int) -> str:
    """Binding of the unit state for files that do not host the fragment."""
    return _render(
        reference_template,
        runtime=runtime_name(suffix),
        alias=RUNTIME_ALIAS,
        suffix=suffix,
        count=count,
    )


def render_declarations(
    suffix: str,
    output: str,
    period: float,
    records: Sequence[FunctionRecord],
    signals: bool = False,
) -> str:
    """Render the runtime fragment hosted by the entry file.

    Args:
        suffix: Unique suffix of the unit.
        output: Coverage output path.
        period: Collection period in seconds; 0 disables periodic collection.
        records: Merged FunctionRecords of the unit, in counter index order.
        signals: Also flush on SIGINT/SIGTERM.
    """
    return _render(
        declaration_template,
        runtime=runtime_name(suffix),
        alias=RUNTIME_ALIAS,
        suffix=suffix,
        output=output,
        period=period,
        records=list(records),
        signals=signals,
    )
