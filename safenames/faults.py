"""
Safenames faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every issue the builder
  can surface. Codes are grouped by domain to keep logs/searches predictable.
- SafenamesError / SafenamesWarning: base types that carry message + options and
  know how to render themselves with rich in a short, actionable way.
- DeclarationErrors: aggregate of several errors detected in one bulk declaration.
- trigger(): central entry point to surface any fault.
- getdoc(): per-code documentation supplied by the host program.

Taxonomy
- precondition failures (missing names, missing method function or constant
  value, non-object passed to properties()) derive from AssertionError.
- type misuse (invalid names, malformed descriptors, bad prototypes,
  non-callable initializers, redefinition of locked properties) derive from TypeError.
- immutability failures (writing a non-writable property) derive from AttributeError,
  so a failed write behaves like any other refused attribute assignment.

Integration
- Builder code creates a fault and calls trigger(fault, code=..., title=..., hint=...).
- Errors are raised, warnings are emitted through the warnings module.
- Printing a fault with a rich console renders a compact header, the message and a hint.
  Styles can be customized via __styles__ in __main__.
"""
import os.path
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset


class FaultCode(IntEnum):
    """
    canonical fault codes used across the package (stable identifiers).

    ranges
    - declaration (2110x)
      • MISSING_NAME, INVALID_NAME, MISSING_ARGUMENT, NOT_AN_OBJECT,
        NOT_A_PROTOTYPE, NOT_CALLABLE
    - descriptors (2120x)
      • INVALID_DESCRIPTOR, REDEFINITION
    - runtime (2130x)
      • READ_ONLY_PROPERTY
    - aggregation (2140x)
      • DECLARATION_ERRORS
    - warnings (22xxx)
      • SHADOWED_VALUE

    codes never change meaning once published; hosts relabel them through
    __codes__ (see normalize()).
    """
    # --- declaration errors (211xx) ---
    MISSING_NAME                = 21101
    INVALID_NAME                = 21102
    MISSING_ARGUMENT            = 21103
    NOT_AN_OBJECT               = 21104
    NOT_A_PROTOTYPE             = 21105
    NOT_CALLABLE                = 21106

    # --- descriptor errors (212xx) ---
    INVALID_DESCRIPTOR          = 21201
    REDEFINITION                = 21202

    # --- runtime errors (213xx) ---
    READ_ONLY_PROPERTY          = 21301

    # --- aggregated errors (214xx) ---
    DECLARATION_ERRORS          = 21401

    # --- warnings (22xxx) ---
    SHADOWED_VALUE              = 22101

    def normalize(self):
        """
        label of this code as shown in rendered faults.

        __main__.__codes__ (FaultCode -> label) wins when it lists the code;
        otherwise the number itself, as a string.
        """
        return str(getattr(sys.modules["__main__"], "__codes__", {}).get(self, self.value))


# Default palettes, overridable key by key through __styles__ in __main__.
_ERROR_STYLES = {
    "prog-name": "bold #E6E6F0",
    "code": "bold #00E5FF",
    "title": "bold #FF4DA6",
    "message": "#C8C8D0",
    "hint-arrow": "#9CE19C dim",
    "hint": "italic #9CE19C",
}

_WARNING_STYLES = {
    "prog-name": "bold #E6E6F0",
    "code": "bold #FFB400",
    "title": "bold #FFC2E0",
    "message": "#D6D6DE",
    "hint-arrow": "#B8EFAF dim",
    "hint": "italic #B8EFAF",
}


def _render(fault, palette, /):
    """
    build the rich renderable shared by errors and warnings.

    options honoured
    - colorful (default True): apply styles.
    - fancy (default False): wrap the body in a titled panel.
    - code / title / hint: header and footer fragments (all optional).
    """
    main = sys.modules["__main__"]
    options = fault.options
    colorful = options.get("colorful", True)
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), styles[style] if colorful else "")

    code = options.get("code", Unset)
    header = Text.assemble(
        "[ ",
        text(getattr(main, "__prog__", "safenames"), "prog-name"),
        " — ",
        text(code.normalize() if isinstance(code, FaultCode) else "", "code"),
        " | ",
        text(str(options.get("title", type(fault).__name__)).title(), "title"),
        " ]"
    )
    message = text(fault.message, "message")
    renders = [message]
    if hint := options.get("hint"):
        renders.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

    if options.get("fancy", False):
        return Panel(Group(*renders), title=header, title_align="left")
    return Group(header, *renders)


class SafenamesError(Exception):
    """
    base type of every error raised by the package.

    carries a message plus read-only options (code, title, hint, ...) filled
    in by trigger(); renders itself through rich.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message)

    @property
    def code(self):
        return self.options.get("code")

    def __rich__(self):
        return _render(self, _ERROR_STYLES)

    def __trigger__(self):
        raise self from None

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class MissingNameError(SafenamesError, AssertionError): ...
class MissingArgumentError(SafenamesError, AssertionError): ...
class NotAnObjectError(SafenamesError, AssertionError): ...
class InvalidNameError(SafenamesError, TypeError): ...
class InvalidDescriptorError(SafenamesError, TypeError): ...
class NotAPrototypeError(SafenamesError, TypeError): ...
class NotCallableError(SafenamesError, TypeError): ...
class RedefinitionError(SafenamesError, TypeError): ...
class ReadOnlyPropertyError(SafenamesError, AttributeError): ...


class SafenamesWarning(ABC, Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message)

    @property
    def code(self):
        return self.options.get("code")

    def __rich__(self):
        return _render(self, _WARNING_STYLES)

    def __trigger__(self):
        # attribute the warning to the first frame outside this package
        warnings.warn(self, skip_file_prefixes=(os.path.dirname(__file__),))

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ShadowedValueWarning(SafenamesWarning): ...


class DeclarationErrors(ExceptionGroup[SafenamesError]):
    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "invalid declarations", exceptions)

    def __init__(self, exceptions, **options):
        super().__init__("invalid declarations", tuple(exceptions))
        self.options = MappingProxyType(options)

    def derive(self, exceptions):
        return type(self)(exceptions, **self.options)

    def __rich__(self):
        main = sys.modules["__main__"]
        colorful = self.options.get("colorful", True)
        styles = defaultdict(str, _ERROR_STYLES | getattr(main, "__styles__", {}))

        def text(fragment, style=""):
            return Text(str(fragment), styles[style] if colorful else "")

        header = Text.assemble(
            "[ ",
            text(getattr(main, "__prog__", "safenames"), "prog-name"),
            " — ",
            text(self.message.title(), "title"),
            " ]"
        )
        renders = [exception.__rich__() for exception in self.exceptions]

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")
        return Group(header, *renders)

    def __trigger__(self):
        raise self from None

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    raise (errors) or emit (warnings) a copy of `fault` carrying `options`.

    any object with __replace__(**options) and __trigger__() qualifies; the
    package passes code, title and hint, callers may add colorful or fancy.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    documentation of `code` from __main__.__docs__ (FaultCode -> text), or None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(sys.modules["__main__"], "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "SafenamesError",
    "MissingNameError",
    "MissingArgumentError",
    "NotAnObjectError",
    "InvalidNameError",
    "InvalidDescriptorError",
    "NotAPrototypeError",
    "NotCallableError",
    "RedefinitionError",
    "ReadOnlyPropertyError",
    "SafenamesWarning",
    "ShadowedValueWarning",
    "DeclarationErrors",
    "FaultCode",
    "trigger",
    "getdoc",
)
