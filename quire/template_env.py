"""
The jinja2 environment pages, structural files and frontmatter expressions
are evaluated in, plus the helpers that turn template failures into
RenderErrors.
"""

import functools
import logging
import math
import re
import traceback
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from babel import Locale, UnknownLocaleError
from babel.dates import get_day_names, get_month_names, get_period_names
from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, Undefined, pass_context

from .dates import parse_date
from .errors import QuireError, RenderError
from .models import Expression

logger = logging.getLogger('Quire.template_env')

SINGLE_EXPRESSION_RE = re.compile(r'\A\s*\{\{(.*)\}\}\s*\Z', re.DOTALL)
TEMPLATE_FILENAME = '<template>'

DEFAULT_DATE_FORMAT = '%B %d, %Y'
FALLBACK_LOCALE = 'en'
LOCALIZED_DIRECTIVE_RE = re.compile(r'%([%AaBbhp])')

HELP_VALUE_WIDTH = 60


def create_environment(config, snippets: Iterable = (), cache_buster=None, registry=None) -> Environment:
    """Build a template environment.

    ``registry`` is omitted for the eager pass, where registry queries are not
    available yet; calling one there fails as an undefined name.
    """
    # Imported here: snippets depends on the helpers defined in this module.
    from .snippets import Snippet

    env = Environment(
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )
    env.filters['datefmt'] = functools.partial(datefmt, default_locale=config.site.language)
    env.filters['flatten'] = flatten
    env.filters['help'] = functools.partial(help_filter, env)
    env.tests['help'] = functools.partial(help_test, env)
    env.globals['help'] = template_help
    env.globals['site'] = config.site.as_dict()
    env.globals['readtime'] = functools.partial(readtime, reading_speed=config.build.reading_speed)
    if cache_buster is not None:
        env.globals['cache_bust'] = cache_buster
    if registry is not None:
        env.globals['pages'] = registry.query
        env.globals['tags'] = registry.tag_names

    for definition in snippets:
        env.globals[definition.name] = Snippet(definition, env)
    return env


def render_text(env: Environment, text: str, scope: Mapping[str, Any]) -> str:
    return env.from_string(text).render(scope)


def _ensure_defined(value: Any) -> Any:
    if isinstance(value, Undefined):
        # StrictUndefined raises UndefinedError on conversion
        str(value)
    return value


def evaluate_expression(env: Environment, source: str, scope: Mapping[str, Any]) -> Any:
    """Evaluate a bare jinja2 expression and return its native value."""
    compiled = env.compile_expression(source.strip(), undefined_to_none=False)
    return _ensure_defined(compiled(dict(scope)))


def strip_delimiters(text: str) -> str:
    match = SINGLE_EXPRESSION_RE.match(text)
    if match and '{{' not in match.group(1):
        return match.group(1)
    return text


def evaluate_value(env: Environment, text: str, scope: Mapping[str, Any]) -> Any:
    """Evaluate a frontmatter Expression.

    A value that is exactly one ``{{ expr }}`` keeps the expression's native
    type (a list stays a list), anything else renders to a string.
    """
    match = SINGLE_EXPRESSION_RE.match(text)
    if match and '{{' not in match.group(1) and '}}' not in match.group(1):
        return evaluate_expression(env, match.group(1), scope)
    return render_text(env, text, scope)


def contains_expression(value: Any) -> bool:
    if isinstance(value, Expression):
        return True
    if isinstance(value, list):
        return any(contains_expression(item) for item in value)
    if isinstance(value, dict):
        return any(contains_expression(item) for item in value.values())
    return False


def resolve_value(env: Environment, value: Any, scope: Mapping[str, Any], defer_registry: bool = False) -> Any:
    if isinstance(value, Expression):
        if defer_registry and value.needs_registry:
            return value
        return evaluate_value(env, value.text, scope)
    if isinstance(value, list):
        return [resolve_value(env, item, scope, defer_registry) for item in value]
    if isinstance(value, dict):
        return {key: resolve_value(env, item, scope, defer_registry) for key, item in value.items()}
    return value


def resolve_fields(env: Environment, fields: Mapping[str, Any], scope: Mapping[str, Any],
                   path: str, defer_registry: bool = False) -> Dict[str, Any]:
    """Resolve every Expression in ``fields``, in field order.

    Literal fields are visible to every expression; a resolved field becomes
    visible to the fields after it. With ``defer_registry`` set, expressions
    that query the registry are left in place.
    """
    scope = dict(scope)
    for key, value in fields.items():
        if not contains_expression(value):
            scope[key] = value

    resolved = {}
    for key, value in fields.items():
        try:
            result = resolve_value(env, value, scope, defer_registry)
        except Exception as e:
            raise to_render_error(e, path, expression=_first_expression(value)) from e
        resolved[key] = result
        if not contains_expression(result):
            scope[key] = result
    return resolved


def _first_expression(value: Any) -> Optional[str]:
    if isinstance(value, Expression):
        return value.text
    if isinstance(value, list):
        items = value
    elif isinstance(value, dict):
        items = value.values()
    else:
        return None
    for item in items:
        found = _first_expression(item)
        if found:
            return found
    return None


def error_line(exc: BaseException, first_line: int = 1) -> Optional[int]:
    """Line of ``exc`` within the outermost template, shifted by ``first_line``."""
    lineno = None
    if isinstance(exc, TemplateSyntaxError):
        lineno = exc.lineno
    else:
        for frame in traceback.extract_tb(exc.__traceback__):
            if frame.filename == TEMPLATE_FILENAME:
                lineno = frame.lineno
                break
    if lineno is None:
        return None
    return lineno + first_line - 1


def to_render_error(exc: BaseException, path: str, first_line: int = 1,
                    expression: Optional[str] = None) -> RenderError:
    if isinstance(exc, QuireError):
        message = str(exc)
    else:
        message = getattr(exc, 'message', None) or str(exc) or type(exc).__name__
        if not isinstance(message, str):
            message = str(exc)
    line = None if expression else error_line(exc, first_line)
    return RenderError(message, path=path, line=line, expression=expression)


@functools.lru_cache(maxsize=None)
def find_locale(name: Optional[str]) -> Optional[Locale]:
    """Babel locale for ``name`` (``fr``, ``fr_FR`` or ``en-us``), or None."""
    if not name:
        return None
    try:
        return Locale.parse(str(name).strip().replace('-', '_'))
    except (ValueError, UnknownLocaleError):
        logger.warning(f"Unknown locale '{name}', using the site default")
        return None


def localized_strftime(moment: datetime, format: str, locale: Locale) -> str:
    """strftime with day, month and AM/PM names taken from ``locale``."""
    def localize(match):
        code = match.group(1)
        if code == '%':
            return '%%'
        if code == 'A':
            name = get_day_names('wide', locale=locale)[moment.weekday()]
        elif code == 'a':
            name = get_day_names('abbreviated', locale=locale)[moment.weekday()]
        elif code == 'B':
            name = get_month_names('wide', locale=locale)[moment.month]
        elif code in 'bh':
            name = get_month_names('abbreviated', locale=locale)[moment.month]
        else:
            name = get_period_names(locale=locale)['am' if moment.hour < 12 else 'pm']
        return name.replace('%', '%%')

    return moment.strftime(LOCALIZED_DIRECTIVE_RE.sub(localize, format))


def datefmt(value: Any, format: str = DEFAULT_DATE_FORMAT, locale: Optional[str] = None,
            default_locale: str = FALLBACK_LOCALE) -> str:
    """Format a date value or date string with strftime directives.

    Day and month names follow ``locale``, which defaults to the site
    language. An unknown locale falls back to that default.
    """
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"datefmt: cannot parse {value!r} as a date")
    resolved = find_locale(locale) or find_locale(default_locale) or find_locale(FALLBACK_LOCALE)
    return localized_strftime(parsed, format, resolved)


class TemplateHelp(Exception):
    """Raised by ``help`` to stop rendering and show what a template can use."""


def _describe(value: Any) -> str:
    text = repr(value)
    if len(text) > HELP_VALUE_WIDTH:
        text = text[:HELP_VALUE_WIDTH - 3] + '...'
    return text


@pass_context
def template_help(context) -> None:
    """``{{ help() }}``: list the variables, functions, filters and tests in scope."""
    variables, functions = [], []
    for name, value in sorted(context.get_all().items()):
        if callable(value):
            functions.append(name)
        else:
            variables.append(f"{name} = {_describe(value)}")
    env = context.environment
    raise TemplateHelp('\n'.join([
        'template help',
        '  variables: ' + ', '.join(variables),
        '  functions: ' + ', '.join(functions),
        '  filters: ' + ', '.join(sorted(env.filters)),
        '  tests: ' + ', '.join(sorted(env.tests)),
    ]))


def help_filter(env: Environment, value: Any) -> None:
    """``{{ value | help }}``: show a value and the filters it can go through."""
    raise TemplateHelp(f"help: {type(value).__name__} {_describe(value)}\n"
                       f"  filters: {', '.join(sorted(env.filters))}")


def help_test(env: Environment, value: Any) -> bool:
    """``{% if value is help %}``: show a value and the tests it can go through."""
    raise TemplateHelp(f"help: {type(value).__name__} {_describe(value)}\n"
                       f"  tests: {', '.join(sorted(env.tests))}")


def flatten(value: Any) -> list:
    """Flatten nested lists and tuples into a single list."""
    result = []
    for item in value:
        if isinstance(item, (list, tuple)):
            result.extend(flatten(item))
        else:
            result.append(item)
    return result


CODE_FENCE_RE = re.compile(r'```.*?```|~~~.*?~~~', re.DOTALL)
HTML_TAG_RE = re.compile(r'<[^>]+>')
MARKUP_RE = re.compile(r'[#*_>`~|\[\]()!]')


def readtime(text: Any, reading_speed: int = 200) -> int:
    """Estimated reading time of ``text`` in whole minutes, at least 1."""
    text = CODE_FENCE_RE.sub(' ', str(text))
    text = HTML_TAG_RE.sub(' ', text)
    text = MARKUP_RE.sub(' ', text)
    words = len(text.split())
    return max(1, math.ceil(words / reading_speed))
