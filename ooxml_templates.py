"""Templating utilities for markup the mappers synthesize."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from jinja2 import BaseLoader, Environment

from slide_markup import escape_text

ENV = Environment(
    loader=BaseLoader(),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    variable_start_string="[[",
    variable_end_string="]]",
)
ENV.filters["xml"] = escape_text

_FONT_XML = (
    '<a:latin typeface="Arial" panose="020B0604020202020204" pitchFamily="34" charset="0"/>'
    '<a:ea typeface="Calibri" panose="020F0502020204030204" pitchFamily="34" charset="0"/>'
    '<a:cs typeface="Arial" panose="020B0604020202020204" pitchFamily="34" charset="0"/>'
)
_BULLET_PPR_XML = (
    '<a:pPr marL="285750" indent="-285750"><a:lnSpc><a:spcPct val="107000"/></a:lnSpc>'
    '<a:spcAft><a:spcPts val="0"/></a:spcAft>'
    '<a:buFont typeface="Arial" panose="020B0604020202020204" pitchFamily="34" charset="0"/>'
    '<a:buChar char="•"/></a:pPr>'
)

BASIS_OF_COVER_TEMPLATE = ENV.from_string(
    "{% for item in items %}"
    "<a:p>[[ ppr ]]"
    '<a:r><a:rPr lang="en-US" sz="[[ size ]]" b="1" dirty="0"><a:effectLst/>'
    '{% if highlight %}<a:highlight><a:srgbClr val="[[ highlight ]]"/></a:highlight>{% endif %}'
    "[[ fonts ]]</a:rPr><a:t>[[ item.category | xml ]]</a:t></a:r>"
    '<a:r><a:rPr lang="en-US" sz="[[ size ]]" dirty="0"><a:effectLst/>'
    '{% if highlight %}<a:highlight><a:srgbClr val="[[ highlight ]]"/></a:highlight>{% endif %}'
    "[[ fonts ]]</a:rPr><a:t>: [[ item.basis | xml ]]</a:t></a:r>"
    "</a:p>"
    "{% endfor %}"
    "<a:p>[[ ppr ]]"
    '<a:endParaRPr lang="en-US" sz="[[ size ]]" dirty="0"><a:effectLst/>[[ fonts ]]</a:endParaRPr>'
    "</a:p>"
)

RUN_TEMPLATE = ENV.from_string("<a:r>[[ properties ]]<a:t>[[ value | xml ]]</a:t></a:r>")

DEFAULT_RUN_PROPERTIES = '<a:rPr lang="en-US" dirty="0"/>'


def render_basis_of_cover(
    items: Iterable[Mapping[str, str]],
    size: int = 2000,
    highlight: Optional[str] = "FFFF00",
) -> str:
    """Bullet paragraphs (bold category, ': basis') plus the empty trailing paragraph a cell needs."""
    return BASIS_OF_COVER_TEMPLATE.render(
        items=list(items),
        ppr=_BULLET_PPR_XML,
        fonts=_FONT_XML,
        size=size,
        highlight=highlight,
    )


def render_run(value: str, properties: Optional[str] = None) -> str:
    return RUN_TEMPLATE.render(value=value, properties=properties or DEFAULT_RUN_PROPERTIES)
