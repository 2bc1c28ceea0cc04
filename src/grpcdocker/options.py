"""Leading-flag parsing shared by every entry point.

Flags follow getopt conventions: parsing stops at the first non-option token
or after ``--``, short flags may be clustered (``-np my-project``) and values
may be attached (``-pmy-project``).

Context flags:

* ``-p <project>`` / ``-z <zone>`` override the project and zone
* ``-n`` requests a dry run
* ``-f <name>`` selects the positional resolver the remaining args go to

Resolver flags (``-d``, ``-r``, ``-s``, ``-h``) are forwarded to the selected
resolver. Unknown flags are logged and ignored; a value flag without a value
keeps its default, except ``-f`` which must be given a value.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .errors import ConfigurationError
from .errors_catalog import actionable_error
from .models import InvocationContext, Settings
from .resolvers import RESOLVER_FLAGS, PositionalResolver, default_resolvers

CONTEXT_FLAGS = "np:z:f:"


@dataclass
class ParsedFlags:
    values: Dict[str, str] = field(default_factory=dict)
    switches: Set[str] = field(default_factory=set)
    unknown: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    remaining: List[str] = field(default_factory=list)


def _parse_optstring(optstring: str) -> Dict[str, bool]:
    letters: Dict[str, bool] = {}
    for index, char in enumerate(optstring):
        if char == ":":
            continue
        letters[char] = optstring[index + 1 : index + 2] == ":"
    return letters


def parse_flags(argv: Sequence[str], optstring: str) -> ParsedFlags:
    """Parses leading flags described by a getopt optstring such as ``np:z:``."""
    letters = _parse_optstring(optstring)
    parsed = ParsedFlags()
    args = list(argv)
    index = 0

    while index < len(args):
        token = args[index]
        if token == "--":
            index += 1
            break
        if not token.startswith("-") or token == "-":
            break

        index += 1
        position = 1
        while position < len(token):
            letter = token[position]
            position += 1
            if letter not in letters:
                parsed.unknown.append(letter)
                continue
            if not letters[letter]:
                parsed.switches.add(letter)
                continue

            if position < len(token):
                parsed.values[letter] = token[position:]
            elif index < len(args):
                parsed.values[letter] = args[index]
                index += 1
            else:
                parsed.missing.append(letter)
            break

    parsed.remaining = args[index:]
    return parsed


class OptionResolver:
    """Turns raw entry point arguments into a context and a positional record."""

    def __init__(self, logger: logging.Logger, resolvers: Optional[Dict[str, PositionalResolver]] = None):
        self.logger = logger
        self.resolvers = resolvers if resolvers is not None else default_resolvers()

    def lookup(self, name: str) -> PositionalResolver:
        resolver = self.resolvers.get(name)
        if resolver is None:
            raise ConfigurationError(actionable_error("arg_func_not_defined", name=name))
        return resolver

    def resolve(
        self,
        argv: Sequence[str],
        base: InvocationContext,
        settings: Settings,
        arg_func: Optional[str] = None,
        entry_point: Optional[str] = None,
    ) -> Tuple[InvocationContext, object]:
        parsed = parse_flags(argv, CONTEXT_FLAGS + RESOLVER_FLAGS)

        for letter in parsed.unknown:
            self.logger.warning("-%s: unknown flag; it's ignored", letter)

        if "f" in parsed.missing or parsed.values.get("f") == "":
            raise ConfigurationError(actionable_error("arg_func_missing"))
        for letter in parsed.missing:
            self.logger.debug("-%s given without a value; keeping the default", letter)

        context = replace(
            base,
            project=parsed.values.get("p") or base.project,
            zone=parsed.values.get("z") or base.zone,
            dry_run=base.dry_run or "n" in parsed.switches,
        )
        self.logger.debug(
            "Resolved project=%s zone=%s dry_run=%s",
            context.project,
            context.zone,
            context.dry_run,
        )

        name = parsed.values.get("f") or arg_func
        if not name:
            return context, tuple(parsed.remaining)

        resolver = self.lookup(name)
        if arg_func and entry_point and resolver.record_type is not self.lookup(arg_func).record_type:
            raise ConfigurationError(
                actionable_error("arg_func_mismatch", name=name, entry_point=entry_point)
            )

        forwarded = {
            letter: value
            for letter, value in parsed.values.items()
            if letter in RESOLVER_FLAGS
        }
        for letter in sorted(set(forwarded) - set(resolver.options)):
            self.logger.warning("-%s: unknown flag; it's ignored", letter)
            forwarded.pop(letter)

        return context, resolver.resolve(parsed.remaining, forwarded, settings)
