"""A small Handlebars-style template engine for event messages.

Supported tags:

    {{path}}                                  value lookup, e.g. venue.city or summary_list.0
    {{#if path}} ... {{else}} ... {{/if}}     conditional block on a truthy value
    {{#each path}} ... {{/each}}              iterate a list; {{this}} is the item
    {{datetime path format='EEEE, MMMM d'}}   format a datetime with a CLDR pattern

Lookups inside an {{#each}} block fall back to the enclosing scope, so
{{link}} still works while iterating hosts. Missing values render as "".
"""

import re
from datetime import datetime

from babel.dates import format_datetime

DEFAULT_LOCALE = "en_US"

_TAG = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_DATETIME_TAG = re.compile(r"""^datetime\s+(\S+)\s+format=(['"])(.*)\2$""", re.DOTALL)

_MISSING = object()


class TemplateSyntaxError(ValueError):
    """Raised when a template has an unknown tag or unbalanced blocks."""


class _Text:
    def __init__(self, text):
        self.text = text


class _Var:
    def __init__(self, path):
        self.path = path


class _DateTime:
    def __init__(self, path, pattern):
        self.path = path
        self.pattern = pattern


class _If:
    def __init__(self, path):
        self.path = path
        self.body = []
        self.else_body = []


class _Each:
    def __init__(self, path):
        self.path = path
        self.body = []


def _split_path(path):
    # "summary_list.[0]" and "summary_list.0" are the same lookup
    return [seg[1:-1] if seg.startswith("[") and seg.endswith("]") else seg
            for seg in path.split(".")]


def _parse(source):
    root = []
    # Each entry: (node or None for root, list currently being filled)
    stack = [(None, root)]

    pos = 0
    for m in _TAG.finditer(source):
        if m.start() > pos:
            stack[-1][1].append(_Text(source[pos:m.start()]))
        pos = m.end()

        tag = m.group(1).strip()
        if tag.startswith("#if "):
            node = _If(_split_path(tag[4:].strip()))
            stack[-1][1].append(node)
            stack.append((node, node.body))
        elif tag.startswith("#each "):
            node = _Each(_split_path(tag[6:].strip()))
            stack[-1][1].append(node)
            stack.append((node, node.body))
        elif tag == "else":
            node = stack[-1][0]
            if not isinstance(node, _If) or stack[-1][1] is node.else_body:
                raise TemplateSyntaxError("{{else}} outside of an {{#if}} block at offset %d" % m.start())
            stack[-1] = (node, node.else_body)
        elif tag in ("/if", "/each"):
            expected = _If if tag == "/if" else _Each
            if not isinstance(stack[-1][0], expected):
                raise TemplateSyntaxError("Unexpected {{%s}} at offset %d" % (tag, m.start()))
            stack.pop()
        elif tag.startswith("datetime "):
            dm = _DATETIME_TAG.match(tag)
            if not dm:
                raise TemplateSyntaxError("Malformed datetime tag {{%s}}" % tag)
            stack[-1][1].append(_DateTime(_split_path(dm.group(1)), dm.group(3)))
        elif tag and not tag.startswith(("#", "/")) and " " not in tag:
            stack[-1][1].append(_Var(_split_path(tag)))
        else:
            raise TemplateSyntaxError("Unknown tag {{%s}}" % tag)

    if len(stack) > 1:
        kind = "#if" if isinstance(stack[-1][0], _If) else "#each"
        raise TemplateSyntaxError("Unclosed {{%s}} block" % kind)

    if pos < len(source):
        root.append(_Text(source[pos:]))
    return root


def _get(obj, key):
    if obj is None:
        return _MISSING
    if isinstance(obj, dict):
        return obj.get(key, _MISSING)
    if isinstance(obj, (list, tuple)):
        if key.isdigit() and int(key) < len(obj):
            return obj[int(key)]
        return _MISSING
    return getattr(obj, key, _MISSING)


def _resolve(path, scopes):
    if path[0] == "this":
        value = scopes[-1]
    else:
        for scope in reversed(scopes):
            value = _get(scope, path[0])
            if value is not _MISSING:
                break
        else:
            return None

    for key in path[1:]:
        value = _get(value, key)
        if value is _MISSING:
            return None
    return value


def _to_text(value):
    if value is None or value is False:
        return ""
    if value is True:
        return "true"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _render(nodes, scopes, out, tzinfo, locale):
    for node in nodes:
        if isinstance(node, _Text):
            out.append(node.text)
        elif isinstance(node, _Var):
            out.append(_to_text(_resolve(node.path, scopes)))
        elif isinstance(node, _DateTime):
            value = _resolve(node.path, scopes)
            if isinstance(value, datetime):
                out.append(format_datetime(value, node.pattern, tzinfo=tzinfo, locale=locale))
        elif isinstance(node, _If):
            branch = node.body if _resolve(node.path, scopes) else node.else_body
            _render(branch, scopes, out, tzinfo, locale)
        elif isinstance(node, _Each):
            for item in _resolve(node.path, scopes) or ():
                _render(node.body, scopes + [item], out, tzinfo, locale)


class MessageTemplate:
    """A compiled message template.

    The template is parsed once; render() may be called for every event.
    """

    def __init__(self, source):
        self.source = source
        self._nodes = _parse(source)

    def render(self, fields, tzinfo=None, locale=DEFAULT_LOCALE):
        """Render with a fields object (dataclass or dict).

        Args:
            fields: the root scope for lookups.
            tzinfo: timezone datetimes are shown in; None keeps their own.
            locale: Babel locale identifier for month/day names.
        """
        out = []
        _render(self._nodes, [fields], out, tzinfo, locale)
        return "".join(out)


FULL_TEMPLATE = (
    "*{{name}}*\n"
    "\n"
    "{{datetime start_time format='EEEE, MMMM d, y'}}{{#if series}} _({{series}})_{{/if}}\n"
    "{{datetime start_time format='h:mm a'}} to {{datetime end_time format='h:mm a'}}"
    "{{#if rsvp.closes_at}} _(RSVP by {{datetime rsvp.closes_at format='EEEE, MMMM d h:mm a'}})_{{/if}}\n"
    "[Meetup Event Link]({{link}}) ({{rsvp_yes_count}} RSVP'd, {{comments}} commented)\n"
    "\n"
    "_Hosted By_: {{hosts}}\n"
    "\n"
    "{{summary_list.0}}{{#if summary_list.1}}\n"
    "\n"
    "{{summary_list.1}}{{#if summary_list.2}} [[More...]({{link}})]{{/if}}{{/if}}"
    "{{#if how_to_find_us}}\n"
    "\n"
    "*{{how_to_find_us}}*{{/if}}"
    "{{#if venue}}\n"
    "\n"
    "➡ Location:\n"
    "{{venue.name}}\n"
    "{{#if venue.has_address}}{{venue.address_multiline}}\n{{/if}}"
    "{{venue.city}}, {{venue.state}} {{venue.zip}}\n"
    "[[Google Maps]({{venue.google_maps_link}})] [[Apple Maps]({{venue.apple_maps_link}})] "
    "[[Waze]({{venue.waze_link}})]{{/if}}"
)

SIMPLE_TEMPLATE = (
    "*{{name}}*\n"
    "{{datetime start_time format='EEEE, MMMM d'}} at {{datetime start_time format='h:mm a'}} ({{from_now}})\n"
    "\n"
    "{{description}}"
    "{{#if venue}}\n"
    "\n"
    "Location: {{venue.name}}, {{venue.address_line}}{{/if}}\n"
    "\n"
    "{{link}}"
)

TEMPLATES = {
    "full": FULL_TEMPLATE,
    "simple": SIMPLE_TEMPLATE,
}

_compiled = {}


def get_template(style):
    """Return the compiled built-in template for a message style."""
    if style not in _compiled:
        _compiled[style] = MessageTemplate(TEMPLATES[style])
    return _compiled[style]
