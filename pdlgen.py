"""Rust type bindings generator for Chrome DevTools Protocol definitions.

Generates typed Rust modules from one or more `.pdl` protocol documents (or
their `.json` equivalents). Produces a single `<target-mod>.rs` file holding
one module per document, one module per domain and a global `Event` union.

Usage:
    python pdlgen.py --out-dir src/generated js_protocol.pdl browser_protocol.pdl
"""

import argparse
import json
import os
import re
import subprocess
import sys
from collections import defaultdict, deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple

OUT_DIR_ENV = "OUT_DIR"
DEFAULT_TARGET_MOD = "cdp"
DEFAULT_TYPES_CRATE = "cdp_types"
DOC_BASE_URL = "https://chromedevtools.github.io/devtools-protocol/tot"

LARGE_VARIANT_THRESHOLD = 200
"""Size (in size units) at which an `Event` variant payload gets boxed.

Mirrors clippy's `large_enum_variant` default. It is a heuristic for the
generated union's footprint, not a property of the protocol; override it per
run with --box-threshold.
"""


# ===--- CLI config contracts ---=== #


VALID_ERROR_CODES = {
    "MISSING_INPUT",
    "PATH_NOT_FOUND",
    "MISSING_OUT_DIR",
    "INVALID_MODULE_NAME",
    "INVALID_FEATURE_NAME",
    "INVALID_THRESHOLD",
    "DUPLICATE_MODULE",
    "CONFLICT_GENERATE_DISCOVERY",
    "FILTER_WITHOUT_LIST",
}
_RUST_MODULE_RE = re.compile(r"^[a-z_][a-z0-9_]*$")
_RUST_CRATE_PATH_RE = re.compile(r"^[a-z_][a-z0-9_]*(::[a-z_][a-z0-9_]*)*$")
_FEATURE_NAME_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_\-]*$")


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


SERDE_NONE = "none"
SERDE_ALWAYS = "always"
SERDE_FEATURE = "feature"


@dataclass(frozen=True)
class SerdeSupport:
    """Serialization policy for every generated item.

    Three modes:
        none:    no serde derives, attributes, imports or event helpers.
        always:  plain `#[derive(Serialize, Deserialize)]` and `#[serde(...)]`.
        feature: every serde attribute wrapped in
                 `#[cfg_attr(feature = "<feature>", ...)]` and every serde-only
                 item gated with `#[cfg(feature = "<feature>")]`.

    Attributes:
        mode: One of SERDE_NONE, SERDE_ALWAYS, SERDE_FEATURE.
        feature: Cargo feature name. Required for SERDE_FEATURE, else None.
    """

    mode: str = SERDE_ALWAYS
    feature: str | None = None

    def __post_init__(self) -> None:
        if self.mode not in (SERDE_NONE, SERDE_ALWAYS, SERDE_FEATURE):
            raise ValueError(f"Unknown serde mode: {self.mode}")
        if (self.mode == SERDE_FEATURE) != (self.feature is not None):
            raise ValueError("serde feature name is required for feature mode only")

    @classmethod
    def disabled(cls) -> "SerdeSupport":
        return cls(SERDE_NONE)

    @classmethod
    def with_feature(cls, feature: str) -> "SerdeSupport":
        return cls(SERDE_FEATURE, feature)

    @property
    def enabled(self) -> bool:
        return self.mode != SERDE_NONE

    @property
    def label(self) -> str:
        if self.mode == SERDE_FEATURE:
            return f"feature {self.feature}"
        return self.mode

    def attr(self, body: str) -> list[str]:
        if self.mode == SERDE_NONE:
            return []
        if self.mode == SERDE_ALWAYS:
            return [f"#[{body}]"]
        return [f"#[cfg_attr(feature = {rust_string(self.feature)}, {body})]"]

    def gate(self) -> list[str]:
        if self.mode == SERDE_FEATURE:
            return [f"#[cfg(feature = {rust_string(self.feature)})]"]
        return []

    def imports(self) -> list[str]:
        if not self.enabled:
            return []
        return self.gate() + ["use serde::{Deserialize, Serialize};"]

    def derives(self) -> list[str]:
        return self.attr("derive(Serialize, Deserialize)")

    def rename(self, wire_name: str) -> list[str]:
        return self.attr(f"serde(rename = {rust_string(wire_name)})")

    def tag(self, name: str) -> list[str]:
        return self.attr(f"serde(tag = {rust_string(name)})")

    def skip_none(self) -> list[str]:
        return self.attr('serde(skip_serializing_if = "Option::is_none")')


@dataclass(frozen=True)
class GeneratorOptions:
    """Options that shape the generated Rust source.

    Attributes:
        with_experimental: Include experimental domains, datatypes and params.
        with_deprecated: Include deprecated domains, datatypes and params.
        serde: Serialization policy.
        target_mod: Name of the top-level module and of the output file stem.
        types_crate: Crate path providing `Method`, `Command` and `CdpEvent`.
        box_threshold: Event payload size at or above which the payload is
            boxed in the `Event` union.
    """

    with_experimental: bool = True
    with_deprecated: bool = False
    serde: SerdeSupport = field(default_factory=SerdeSupport)
    target_mod: str = DEFAULT_TARGET_MOD
    types_crate: str = DEFAULT_TYPES_CRATE
    box_threshold: int = LARGE_VARIANT_THRESHOLD


@dataclass(frozen=True)
class GenerateConfig:
    inputs: tuple[Path, ...]
    output_dir: Path
    options: GeneratorOptions
    run_formatter: bool = True


@dataclass(frozen=True)
class DiscoveryConfig:
    command: str
    inputs: tuple[Path, ...]
    filter_text: str | None
    info_domain: str | None


def validate_path_exists(
    path: Path | None, flag: str, suggestion: str | None = None
) -> Path:
    if path is None:
        raise ConfigError(
            "PATH_NOT_FOUND",
            f"{flag} is required: no path provided.",
            suggestion or f"Pass the path explicitly: {flag} /path/to/resource",
        )
    if path.exists():
        return path
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"Path for {flag} does not exist: {path}",
        suggestion or "Provide an existing path for this argument.",
    )


def validate_module_name(name: str, flag: str) -> str:
    if _RUST_MODULE_RE.match(name):
        return name
    raise ConfigError(
        "INVALID_MODULE_NAME",
        f"Invalid Rust module name for {flag}: {name!r}",
        "Module names must be lowercase snake_case identifiers (for example cdp).",
    )


def validate_feature_name(name: str) -> str:
    if _FEATURE_NAME_RE.match(name):
        return name
    raise ConfigError(
        "INVALID_FEATURE_NAME",
        f"Invalid cargo feature name: {name!r}",
        "Feature names may contain letters, digits, '_' and '-' (for example serde0).",
    )


def protocol_module_name(path: Path) -> str:
    return to_snake_case(Path(path).stem)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate Rust types from Chrome DevTools Protocol definitions"
    )

    parser.add_argument("pdls", nargs="*", type=Path, metavar="PDL")
    parser.add_argument("--out-dir", type=Path, default=None)
    parser.add_argument("--target-mod", type=str, default=DEFAULT_TARGET_MOD)
    parser.add_argument(
        "--experimental", action=argparse.BooleanOptionalAction, default=True
    )
    parser.add_argument(
        "--deprecated", action=argparse.BooleanOptionalAction, default=False
    )

    serde_group = parser.add_mutually_exclusive_group()
    serde_group.add_argument("--no-serde", action="store_true", default=False)
    serde_group.add_argument("--serde-feature", type=str, default=None)

    parser.add_argument("--types-crate", type=str, default=DEFAULT_TYPES_CRATE)
    parser.add_argument("--box-threshold", type=int, default=LARGE_VARIANT_THRESHOLD)
    parser.add_argument("--skip-fmt", action="store_true", default=False)

    discovery_group = parser.add_mutually_exclusive_group()
    discovery_group.add_argument("--list-domains", action="store_true", default=False)
    discovery_group.add_argument("--info", type=str, default=None)

    parser.add_argument("--filter", type=str, default=None)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def validate_config(args: argparse.Namespace) -> GenerateConfig | DiscoveryConfig:
    has_discovery_command = bool(args.list_domains or args.info)
    has_generate_only_input = bool(
        args.out_dir is not None
        or args.skip_fmt
        or args.no_serde
        or args.serde_feature is not None
        or args.target_mod != DEFAULT_TARGET_MOD
        or args.types_crate != DEFAULT_TYPES_CRATE
        or args.box_threshold != LARGE_VARIANT_THRESHOLD
    )

    if args.filter and not args.list_domains:
        raise ConfigError(
            "FILTER_WITHOUT_LIST",
            "--filter requires --list-domains.",
            "Add --list-domains or remove --filter.",
        )

    if has_discovery_command and has_generate_only_input:
        raise ConfigError(
            "CONFLICT_GENERATE_DISCOVERY",
            "Generate flags cannot be combined with discovery flags.",
            "Choose either generate mode or one discovery command.",
        )

    if not args.pdls:
        raise ConfigError(
            "MISSING_INPUT",
            "At least one protocol document is required.",
            "Pass one or more .pdl or .json files, e.g. js_protocol.pdl browser_protocol.pdl",
        )
    inputs = tuple(validate_path_exists(path, "PDL") for path in args.pdls)

    modules: dict[str, Path] = {}
    for path in inputs:
        module = validate_module_name(protocol_module_name(path), str(path))
        if module in modules:
            raise ConfigError(
                "DUPLICATE_MODULE",
                f"{modules[module]} and {path} both map to protocol module '{module}'.",
                "Rename one of the documents; each file stem becomes a Rust module.",
            )
        modules[module] = path

    if has_discovery_command:
        command = "list-domains" if args.list_domains else "info"
        return DiscoveryConfig(
            command=command,
            inputs=inputs,
            filter_text=args.filter,
            info_domain=args.info,
        )

    target_mod = validate_module_name(args.target_mod, "--target-mod")
    if not _RUST_CRATE_PATH_RE.match(args.types_crate):
        raise ConfigError(
            "INVALID_MODULE_NAME",
            f"Invalid Rust crate path for --types-crate: {args.types_crate!r}",
            "Use a crate name or path such as cdp_types or my_crate::types.",
        )
    if args.box_threshold <= 0:
        raise ConfigError(
            "INVALID_THRESHOLD",
            f"--box-threshold must be positive, got {args.box_threshold}.",
            f"The default is {LARGE_VARIANT_THRESHOLD}.",
        )

    if args.no_serde:
        serde = SerdeSupport.disabled()
    elif args.serde_feature is not None:
        serde = SerdeSupport.with_feature(validate_feature_name(args.serde_feature))
    else:
        serde = SerdeSupport()

    output_dir = args.out_dir
    if output_dir is None:
        env_dir = os.environ.get(OUT_DIR_ENV)
        if not env_dir:
            raise ConfigError(
                "MISSING_OUT_DIR",
                f"No output location: --out-dir not given and {OUT_DIR_ENV} is not set.",
                f"Pass --out-dir DIR or export {OUT_DIR_ENV} (set by cargo for build scripts).",
            )
        output_dir = Path(env_dir)

    options = GeneratorOptions(
        with_experimental=bool(args.experimental),
        with_deprecated=bool(args.deprecated),
        serde=serde,
        target_mod=target_mod,
        types_crate=args.types_crate,
        box_threshold=args.box_threshold,
    )
    return GenerateConfig(
        inputs=inputs,
        output_dir=output_dir,
        options=options,
        run_formatter=not args.skip_fmt,
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig | DiscoveryConfig:
    return validate_config(parse_args(argv))


# ===--- Errors ---=== #


class PdlParseError(ValueError):
    def __init__(self, message: str, source: str = "<string>", line: int | None = None):
        location = source if line is None else f"{source}:{line}"
        super().__init__(f"{location}: {message}")
        self.message = message
        self.source = source
        self.line = line


class ResolutionError(RuntimeError):
    """Generated types would be inconsistent (unknown domain, unsized ref)."""


class FormatterError(RuntimeError):
    def __init__(self, message: str, returncode: int, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


# ===--- Protocol model ---=== #


class ProtocolVersion(NamedTuple):
    major: int
    minor: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


@dataclass(frozen=True)
class Variant:
    name: str
    description: str | None = None


TYPE_KINDS = (
    "integer",
    "number",
    "boolean",
    "string",
    "object",
    "any",
    "binary",
    "enum",
    "array",
    "ref",
)
SCALAR_KINDS = frozenset(TYPE_KINDS[:7])


@dataclass(frozen=True)
class PdlType:
    kind: str
    variants: tuple[Variant, ...] = ()
    items: "PdlType | None" = None
    ref: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in TYPE_KINDS:
            raise ValueError(f"Unknown type kind: {self.kind}")
        if self.kind == "array" and self.items is None:
            raise ValueError("array type requires an item type")
        if self.kind == "ref" and not self.ref:
            raise ValueError("ref type requires a referenced name")

    @classmethod
    def named(cls, name: str) -> "PdlType":
        if name in SCALAR_KINDS:
            return cls(name)
        return cls("ref", ref=name)

    @classmethod
    def enum(cls, variants: tuple[Variant, ...]) -> "PdlType":
        return cls("enum", variants=tuple(variants))

    @classmethod
    def array(cls, items: "PdlType") -> "PdlType":
        return cls("array", items=items)

    @property
    def is_integer(self) -> bool:
        return self.kind == "integer"

    @property
    def is_string(self) -> bool:
        return self.kind == "string"


@dataclass(frozen=True)
class Param:
    name: str
    type: PdlType
    optional: bool = False
    experimental: bool = False
    deprecated: bool = False
    description: str | None = None


DATATYPE_TYPE = "type"
DATATYPE_COMMAND = "command"
DATATYPE_EVENT = "event"
DATATYPE_KINDS = (DATATYPE_TYPE, DATATYPE_COMMAND, DATATYPE_EVENT)


@dataclass(frozen=True)
class DomainDatatype:
    """One type definition, command or event of a domain.

    `params` holds the properties of a type definition, or the parameters of
    a command or event. `returns` is only populated for commands. `extends`
    is only set for type definitions; an `enum` extends marks a bare enum.
    """

    kind: str
    name: str
    description: str | None = None
    experimental: bool = False
    deprecated: bool = False
    extends: PdlType | None = None
    params: tuple[Param, ...] = ()
    returns: tuple[Param, ...] = ()
    redirect: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in DATATYPE_KINDS:
            raise ValueError(f"Unknown datatype kind: {self.kind}")

    def raw_name(self, domain_name: str) -> str:
        return f"{domain_name}.{self.name}"

    def ident_name(self) -> str:
        if self.kind == DATATYPE_TYPE:
            return type_name(self.name)
        if self.kind == DATATYPE_COMMAND:
            return f"{to_camel_case(self.name)}Params"
        if self.kind == DATATYPE_EVENT:
            return f"Event{to_camel_case(self.name)}"
        raise ValueError(f"Unknown datatype kind: {self.kind}")

    def returns_name(self) -> str:
        return f"{to_camel_case(self.name)}Returns"

    def as_enum(self) -> tuple[Variant, ...] | None:
        if (
            self.kind == DATATYPE_TYPE
            and self.extends is not None
            and self.extends.kind == "enum"
        ):
            return self.extends.variants
        return None


@dataclass(frozen=True)
class Domain:
    name: str
    description: str | None = None
    experimental: bool = False
    deprecated: bool = False
    depends: tuple[str, ...] = ()
    datatypes: tuple[DomainDatatype, ...] = ()

    def of_kind(self, kind: str) -> tuple[DomainDatatype, ...]:
        return tuple(dt for dt in self.datatypes if dt.kind == kind)


@dataclass(frozen=True)
class Protocol:
    version: ProtocolVersion
    domains: tuple[Domain, ...]
    source: str = "<string>"


# ===--- Naming ---=== #

_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z0-9]+|[A-Z]+[0-9]*|[0-9]+")

RUST_RESERVED = {
    "abstract", "as", "async", "await", "become", "box", "break", "const",
    "continue", "do", "dyn", "else", "enum", "extern", "false", "final", "fn",
    "for", "if", "impl", "in", "let", "loop", "macro", "match", "mod", "move",
    "mut", "override", "priv", "pub", "ref", "return", "static", "struct",
    "trait", "true", "try", "type", "typeof", "unsafe", "unsized", "use",
    "virtual", "where", "while", "yield",
}  # fmt: skip
# These cannot be raw identifiers.
RUST_PATH_KEYWORDS = {"self", "super", "crate", "Self"}


def split_words(name: str) -> list[str]:
    return _WORD_RE.findall(name)


def to_camel_case(name: str) -> str:
    return "".join(word[0].upper() + word[1:].lower() for word in split_words(name))


def to_snake_case(name: str) -> str:
    return "_".join(word.lower() for word in split_words(name))


def field_name(name: str) -> str:
    snake = to_snake_case(name)
    if snake in RUST_PATH_KEYWORDS:
        return f"{snake}_"
    if snake in RUST_RESERVED:
        return f"r#{snake}"
    return snake


def type_name(name: str) -> str:
    camel = to_camel_case(name)
    if camel in RUST_PATH_KEYWORDS:
        return f"{camel}_"
    return camel


def variant_name(wire_name: str) -> str:
    camel = type_name(wire_name)
    if not camel:
        return "Empty"
    if camel[0].isdigit():
        return f"V{camel}"
    return camel


def domain_module_name(domain_name: str) -> str:
    return field_name(domain_name)


def subenum_name(parent: str, inner: str) -> str:
    """Name of the enum hoisted out of an inline enum param.

    `type Parent` with `enum kind` becomes `ParentKind`.
    """
    return f"{to_camel_case(parent)}{type_name(inner)}"


def rust_string(text: str) -> str:
    escaped = (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def doc_attr(text: str | None) -> list[str]:
    if not text:
        return []
    return [f"#[doc = {rust_string(text)}]"]


def indent_lines(lines: list[str], levels: int = 1) -> list[str]:
    pad = "    " * levels
    return [f"{pad}{line}" if line else "" for line in lines]


# ===--- PDL parsing ---=== #

_PDL_VERSION_RE = re.compile(r"^version$")
_PDL_MAJOR_RE = re.compile(r"^  major (\d+)$")
_PDL_MINOR_RE = re.compile(r"^  minor (\d+)$")
_PDL_DOMAIN_RE = re.compile(r"^(experimental )?(deprecated )?domain ([^\s]+)$")
_PDL_DEPENDS_RE = re.compile(r"^  depends on ([^\s]+)$")
_PDL_TYPE_RE = re.compile(
    r"^  (experimental )?(deprecated )?type ([^\s]+) extends (array of )?([^\s]+)$"
)
_PDL_MEMBER_RE = re.compile(r"^  (experimental )?(deprecated )?(command|event) ([^\s]+)$")
_PDL_REDIRECT_RE = re.compile(r"^    redirect ([^\s]+)$")
_PDL_SECTION_RE = re.compile(r"^    (parameters|returns|properties)$")
_PDL_TYPE_ENUM_RE = re.compile(r"^    enum$")
_PDL_PARAM_RE = re.compile(
    r"^      (experimental )?(deprecated )?(optional )?(array of )?([^\s]+) ([^\s]+)$"
)
_PDL_LITERAL_RE = re.compile(r"^      (  )?([^\s]+)$")


def _freeze_param(raw: dict) -> Param:
    if raw["enum"] is not None:
        ty = PdlType.enum(tuple(raw["enum"]))
    else:
        ty = PdlType.named(raw["type"])
    if raw["array"]:
        ty = PdlType.array(ty)
    return Param(
        name=raw["name"],
        type=ty,
        optional=raw["optional"],
        experimental=raw["experimental"],
        deprecated=raw["deprecated"],
        description=raw["description"],
    )


def _freeze_datatype(raw: dict) -> DomainDatatype:
    extends = None
    if raw["kind"] == DATATYPE_TYPE:
        extends = PdlType.named(raw["extends"])
        if raw["enum"] is not None:
            extends = PdlType.enum(tuple(raw["enum"]))
        if raw["array"]:
            extends = PdlType.array(extends)
    return DomainDatatype(
        kind=raw["kind"],
        name=raw["name"],
        description=raw["description"],
        experimental=raw["experimental"],
        deprecated=raw["deprecated"],
        extends=extends,
        params=tuple(_freeze_param(p) for p in raw["params"]),
        returns=tuple(_freeze_param(p) for p in raw["returns"]),
        redirect=raw["redirect"],
    )


def _freeze_domain(raw: dict) -> Domain:
    return Domain(
        name=raw["name"],
        description=raw["description"],
        experimental=raw["experimental"],
        deprecated=raw["deprecated"],
        depends=tuple(raw["depends"]),
        datatypes=tuple(_freeze_datatype(dt) for dt in raw["datatypes"]),
    )


def parse_pdl(text: str, source: str = "<string>") -> Protocol:
    """Parse protocol definition language text into a Protocol.

    Indentation is significant (two spaces per level), `#` lines accumulate
    into the description of the next declaration.
    """
    major: int | None = None
    minor: int | None = None
    in_version = False
    domains: list[dict] = []
    domain: dict | None = None
    item: dict | None = None
    section: list[dict] | None = None
    literals: list[Variant] | None = None
    description = ""

    def take_description() -> str | None:
        nonlocal description
        text_, description = description, ""
        return text_ or None

    for line_no, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.rstrip()
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("#"):
            comment = stripped[1:]
            if comment.startswith(" "):
                comment = comment[1:]
            description = f"{description}\n{comment}" if description else comment
            continue

        if _PDL_VERSION_RE.match(line):
            in_version = True
            take_description()
            continue
        m = _PDL_MAJOR_RE.match(line)
        if m and in_version:
            major = int(m.group(1))
            continue
        m = _PDL_MINOR_RE.match(line)
        if m and in_version:
            minor = int(m.group(1))
            continue

        m = _PDL_DOMAIN_RE.match(line)
        if m:
            in_version = False
            domain = {
                "name": m.group(3),
                "description": take_description(),
                "experimental": bool(m.group(1)),
                "deprecated": bool(m.group(2)),
                "depends": [],
                "datatypes": [],
            }
            domains.append(domain)
            item = section = literals = None
            continue

        if domain is None:
            raise PdlParseError(f"Unexpected line outside a domain: {stripped!r}", source, line_no)

        m = _PDL_DEPENDS_RE.match(line)
        if m:
            domain["depends"].append(m.group(1))
            continue

        m = _PDL_TYPE_RE.match(line)
        if m:
            item = {
                "kind": DATATYPE_TYPE,
                "name": m.group(3),
                "description": take_description(),
                "experimental": bool(m.group(1)),
                "deprecated": bool(m.group(2)),
                "extends": m.group(5),
                "array": bool(m.group(4)),
                "enum": None,
                "params": [],
                "returns": [],
                "redirect": None,
            }
            domain["datatypes"].append(item)
            section = literals = None
            continue

        m = _PDL_MEMBER_RE.match(line)
        if m:
            item = {
                "kind": m.group(3),
                "name": m.group(4),
                "description": take_description(),
                "experimental": bool(m.group(1)),
                "deprecated": bool(m.group(2)),
                "extends": None,
                "array": False,
                "enum": None,
                "params": [],
                "returns": [],
                "redirect": None,
            }
            domain["datatypes"].append(item)
            section = literals = None
            continue

        if item is None:
            raise PdlParseError(f"Unexpected line outside a declaration: {stripped!r}", source, line_no)

        m = _PDL_REDIRECT_RE.match(line)
        if m:
            item["redirect"] = m.group(1)
            take_description()
            continue

        m = _PDL_SECTION_RE.match(line)
        if m:
            name = m.group(1)
            if (name == "properties") != (item["kind"] == DATATYPE_TYPE):
                raise PdlParseError(f"'{name}' is not valid for a {item['kind']}", source, line_no)
            if name == "returns" and item["kind"] != DATATYPE_COMMAND:
                raise PdlParseError("'returns' is only valid for a command", source, line_no)
            section = item["returns"] if name == "returns" else item["params"]
            literals = None
            continue

        if _PDL_TYPE_ENUM_RE.match(line):
            if item["kind"] != DATATYPE_TYPE:
                raise PdlParseError(f"'enum' is not valid for a {item['kind']}", source, line_no)
            item["enum"] = []
            literals = item["enum"]
            section = None
            continue

        m = _PDL_PARAM_RE.match(line)
        if m and section is not None:
            is_enum = m.group(5) == "enum"
            param = {
                "name": m.group(6),
                "type": m.group(5),
                "array": bool(m.group(4)),
                "optional": bool(m.group(3)),
                "experimental": bool(m.group(1)),
                "deprecated": bool(m.group(2)),
                "description": take_description(),
                "enum": [] if is_enum else None,
            }
            section.append(param)
            literals = param["enum"]
            continue

        m = _PDL_LITERAL_RE.match(line)
        if m and literals is not None:
            literals.append(Variant(m.group(2), take_description()))
            continue

        raise PdlParseError(f"Unrecognized line: {stripped!r}", source, line_no)

    if major is None or minor is None:
        raise PdlParseError("Missing 'version' block with major and minor", source)

    return Protocol(
        version=ProtocolVersion(major, minor),
        domains=tuple(_freeze_domain(d) for d in domains),
        source=source,
    )


def _json_type(node: dict, source: str) -> PdlType:
    if "$ref" in node:
        return PdlType("ref", ref=node["$ref"])
    kind = node.get("type")
    if kind == "array":
        if "items" not in node:
            raise PdlParseError("array type without 'items'", source)
        return PdlType.array(_json_type(node["items"], source))
    if "enum" in node:
        return PdlType.enum(tuple(Variant(str(value)) for value in node["enum"]))
    if kind in SCALAR_KINDS:
        return PdlType(kind)
    raise PdlParseError(f"Unsupported type {kind!r}", source)


def _json_param(node: dict, source: str) -> Param:
    return Param(
        name=node["name"],
        type=_json_type(node, source),
        optional=bool(node.get("optional", False)),
        experimental=bool(node.get("experimental", False)),
        deprecated=bool(node.get("deprecated", False)),
        description=node.get("description"),
    )


def _json_datatype(kind: str, node: dict, source: str) -> DomainDatatype:
    if kind == DATATYPE_TYPE:
        name = node["id"]
        extends = _json_type(node, source)
        params = tuple(_json_param(p, source) for p in node.get("properties", ()))
    else:
        name = node["name"]
        extends = None
        params = tuple(_json_param(p, source) for p in node.get("parameters", ()))
    return DomainDatatype(
        kind=kind,
        name=name,
        description=node.get("description"),
        experimental=bool(node.get("experimental", False)),
        deprecated=bool(node.get("deprecated", False)),
        extends=extends,
        params=params,
        returns=tuple(_json_param(p, source) for p in node.get("returns", ())),
        redirect=node.get("redirect"),
    )


def parse_protocol_json(text: str, source: str = "<string>") -> Protocol:
    """Parse the JSON rendering of a protocol (browser_protocol.json)."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as err:
        raise PdlParseError(err.msg, source, err.lineno) from err

    try:
        version = ProtocolVersion(
            int(data["version"]["major"]), int(data["version"]["minor"])
        )
        domains = []
        for node in data["domains"]:
            datatypes = [
                _json_datatype(DATATYPE_TYPE, t, source) for t in node.get("types", ())
            ]
            datatypes.extend(
                _json_datatype(DATATYPE_COMMAND, c, source)
                for c in node.get("commands", ())
            )
            datatypes.extend(
                _json_datatype(DATATYPE_EVENT, e, source)
                for e in node.get("events", ())
            )
            domains.append(
                Domain(
                    name=node["domain"],
                    description=node.get("description"),
                    experimental=bool(node.get("experimental", False)),
                    deprecated=bool(node.get("deprecated", False)),
                    depends=tuple(node.get("dependencies", ())),
                    datatypes=tuple(datatypes),
                )
            )
    except (KeyError, TypeError, ValueError) as err:
        if isinstance(err, PdlParseError):
            raise
        raise PdlParseError(f"Malformed protocol JSON: {err!r}", source) from err

    return Protocol(version=version, domains=tuple(domains), source=source)


def load_protocol(path: Path) -> Protocol:
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return parse_protocol_json(text, str(path))
    return parse_pdl(text, str(path))


# ===--- Resolution context ---=== #


@dataclass
class ResolutionContext:
    """Mutable state of one generation run.

    Attributes:
        domains: Domain name -> index of the document that defines it. Built
            by register_domains before any generation, read-only afterwards.
        protocol_mods: Rust module name per document index.
        type_size: Domain-qualified type name ("Page.Frame") -> size units
            accumulated so far.
        ref_sizes: Deferred (dependent, dependency) size pairs, drained by
            resolve_deferred_sizes.
    """

    domains: dict[str, int] = field(default_factory=dict)
    protocol_mods: list[str] = field(default_factory=list)
    type_size: dict[str, int] = field(default_factory=dict)
    ref_sizes: list[tuple[str, str]] = field(default_factory=list)


def register_domains(
    ctx: ResolutionContext, protocols: list[Protocol], protocol_mods: list[str]
) -> None:
    if len(protocols) != len(protocol_mods):
        raise ValueError("one protocol module name is required per protocol")
    ctx.protocol_mods = list(protocol_mods)
    for idx, protocol in enumerate(protocols):
        for domain in protocol.domains:
            if domain.name in ctx.domains:
                first = ctx.protocol_mods[ctx.domains[domain.name]]
                raise ResolutionError(
                    f"Domain {domain.name} is defined in both {first} and {protocol_mods[idx]}"
                )
            ctx.domains[domain.name] = idx


# ===--- Field types and sizes ---=== #


class SizeContribution(NamedTuple):
    units: int = 0
    deferred: str | None = None


SCALAR_RUST_TYPES = {
    "integer": ("i64", 8),
    "number": ("f64", 8),
    "boolean": ("bool", 1),
    "string": ("String", 24),
    "object": ("serde_json::Value", 32),
    "any": ("serde_json::Value", 32),
    "binary": ("Vec<u8>", 24),
}
ENUM_SIZE = 16
VEC_SIZE = 24
BOX_SIZE = 8


def split_ref(name: str) -> tuple[str, str]:
    prefix, _, local = name.rpartition(".")
    return prefix, local


def size_key(domain_name: str, ident: str) -> str:
    return f"{domain_name}.{ident}"


def store_size(ctx: ResolutionContext, type_key: str, units: int) -> None:
    ctx.type_size[type_key] = ctx.type_size.get(type_key, 0) + units


def defer_size(ctx: ResolutionContext, type_key: str, ref_key: str) -> None:
    ctx.ref_sizes.append((type_key, ref_key))


def record_size(
    ctx: ResolutionContext, type_key: str, contribution: SizeContribution
) -> None:
    if contribution.deferred is None:
        store_size(ctx, type_key, contribution.units)
    else:
        defer_size(ctx, type_key, contribution.deferred)


def is_self_reference(domain_name: str, parent: str, ref: str) -> bool:
    prefix, local = split_ref(ref)
    return local == parent and prefix in ("", domain_name)


def projected_type(ctx: ResolutionContext, domain_name: str, name: str) -> str:
    """Resolve a possibly domain-qualified type name to a Rust path.

    `Runtime.ScriptId` referenced from `Debugger` resolves to
    `super::runtime::ScriptId` when both domains come from the same document,
    and to `super::super::js_protocol::runtime::ScriptId` when they don't.
    """
    prefix, local = split_ref(name)
    ident = type_name(local)
    if not prefix:
        return ident

    current_idx = ctx.domains.get(domain_name)
    if current_idx is None:
        raise ResolutionError(f"Domain {domain_name} is not registered")
    ref_idx = ctx.domains.get(prefix)
    if ref_idx is None:
        raise ResolutionError(f"No referenced domain found for {prefix} (in {name})")

    domain_mod = domain_module_name(prefix)
    if current_idx == ref_idx:
        return f"super::{domain_mod}::{ident}"
    return f"super::super::{ctx.protocol_mods[ref_idx]}::{domain_mod}::{ident}"


def generate_field_type(
    ctx: ResolutionContext,
    domain_name: str,
    parent: str,
    param_name: str,
    ty: PdlType,
) -> tuple[str, SizeContribution]:
    if ty.kind in SCALAR_RUST_TYPES:
        rust_type, units = SCALAR_RUST_TYPES[ty.kind]
        return rust_type, SizeContribution(units)

    if ty.kind == "enum":
        return subenum_name(parent, param_name), SizeContribution(ENUM_SIZE)

    if ty.kind == "array":
        # Vec already breaks recursion, refs need no box here
        if ty.items.kind == "ref":
            inner = projected_type(ctx, domain_name, ty.items.ref)
        else:
            inner, _ = generate_field_type(
                ctx, domain_name, parent, param_name, ty.items
            )
        return f"Vec<{inner}>", SizeContribution(VEC_SIZE)

    if ty.kind == "ref":
        if is_self_reference(domain_name, parent, ty.ref):
            return f"Box<{type_name(parent)}>", SizeContribution(BOX_SIZE)
        prefix, local = split_ref(ty.ref)
        ref_key = size_key(prefix or domain_name, type_name(local))
        return (
            projected_type(ctx, domain_name, ty.ref),
            SizeContribution(deferred=ref_key),
        )

    raise ValueError(f"Unknown type kind: {ty.kind}")


def resolve_deferred_sizes(ctx: ResolutionContext) -> None:
    """Drain the deferred size worklist into the size table.

    A pair is applied only once its dependency has no pairs of its own left,
    so forward references chain through correctly.

    Raises:
        ResolutionError: A dependency never got a size (missing or filtered
            out type), or by-value references form a cycle.
    """
    refs, ctx.ref_sizes = ctx.ref_sizes, []

    pending: dict[str, int] = defaultdict(int)
    waiting: dict[str, list[int]] = defaultdict(list)
    for idx, (name, ref) in enumerate(refs):
        pending[name] += 1
        waiting[ref].append(idx)

    queue = deque(idx for idx, (_, ref) in enumerate(refs) if pending[ref] == 0)
    applied = 0
    while queue:
        idx = queue.popleft()
        name, ref = refs[idx]
        if ref not in ctx.type_size:
            raise ResolutionError(f"No type found for ref {ref} (used by {name})")
        store_size(ctx, name, ctx.type_size[ref])
        applied += 1
        pending[name] -= 1
        if pending[name] == 0:
            queue.extend(waiting[name])

    if applied != len(refs):
        remaining = sorted(name for name, count in pending.items() if count > 0)
        raise ResolutionError(f"By-value reference cycle between types: {remaining}")


# ===--- Enums ---=== #


def hoisted_enum_variants(ty: PdlType) -> tuple[Variant, ...] | None:
    if ty.kind == "enum":
        return ty.variants
    if ty.kind == "array":
        return hoisted_enum_variants(ty.items)
    return None


def enum_variant_table(variants: tuple[Variant, ...]) -> list[tuple[str, str]]:
    return [(variant_name(v.name), v.name) for v in variants]


def generate_enum_str_fns(name: str, table: list[tuple[str, str]]) -> list[str]:
    lines = [f"impl {name} {{", "    pub fn as_str(&self) -> &'static str {"]
    if table:
        lines.append("        match self {")
        for ident, wire in table:
            lines.append(f"            {name}::{ident} => {rust_string(wire)},")
        lines.append("        }")
    else:
        lines.append("        match *self {}")
    lines.extend(["    }", "}"])

    lines.extend(
        [
            f"impl AsRef<str> for {name} {{",
            "    fn as_ref(&self) -> &str {",
            "        self.as_str()",
            "    }",
            "}",
            f"impl ::std::str::FromStr for {name} {{",
            "    type Err = String;",
            "    fn from_str(s: &str) -> Result<Self, Self::Err> {",
            "        match s {",
        ]
    )
    for ident, wire in table:
        lines.append(f"            {rust_string(wire)} => Ok({name}::{ident}),")
    lines.extend(
        [
            "            _ => Err(s.to_string()),",
            "        }",
            "    }",
            "}",
        ]
    )
    return lines


def generate_enum(
    ctx: ResolutionContext,
    options: GeneratorOptions,
    domain_name: str,
    enum_name: str,
    variants: tuple[Variant, ...],
    description: str | None = None,
    deprecated: bool = False,
) -> list[str]:
    ctx.type_size[size_key(domain_name, enum_name)] = ENUM_SIZE
    serde = options.serde
    table = enum_variant_table(variants)

    lines = doc_attr(description)
    if deprecated:
        lines.append("#[deprecated]")
    lines.append("#[derive(Debug, Clone, PartialEq, Eq, Hash)]")
    lines.extend(serde.derives())
    lines.append(f"pub enum {enum_name} {{")
    for variant, (ident, wire) in zip(variants, table):
        lines.extend(indent_lines(doc_attr(variant.description)))
        lines.extend(indent_lines(serde.rename(wire)))
        lines.append(f"    {ident},")
    lines.append("}")
    lines.extend(generate_enum_str_fns(enum_name, table))
    return lines


# ===--- Builders ---=== #


@dataclass(frozen=True)
class FieldDefinition:
    """One generated struct field.

    Attributes:
        name: Rust field identifier (snake_case, keywords escaped).
        raw_name: Wire name from the protocol document.
        ty: Resolved Rust type, without the Option wrapper.
        optional: Field may be absent on the wire; rendered as Option<ty>.
        deprecated: Emit #[deprecated] on the field.
        description: Field documentation.
    """

    name: str
    raw_name: str
    ty: str
    optional: bool
    deprecated: bool = False
    description: str | None = None

    @property
    def field_type(self) -> str:
        if self.optional:
            return f"Option<{self.ty}>"
        return self.ty


def generate_field_definition(
    definition: FieldDefinition, serde: SerdeSupport
) -> list[str]:
    lines = doc_attr(definition.description)
    if definition.deprecated:
        lines.append("#[deprecated]")
    lines.extend(serde.rename(definition.raw_name))
    if definition.optional:
        lines.extend(serde.skip_none())
    lines.append(f"pub {definition.name}: {definition.field_type},")
    return lines


def _field_initializers(fields: list[FieldDefinition]) -> list[str]:
    return [
        f"{f.name}: None," if f.optional else f"{f.name}: {f.name}.into(),"
        for f in fields
    ]


def generate_builder(struct_ident: str, fields: list[FieldDefinition]) -> list[str]:
    """Emit `new`/`builder` constructors and the `<Name>Builder` type.

    Mandatory fields are constructor arguments; each optional field gets one
    chainable setter on the builder; `build` yields the struct.
    """
    if not fields:
        raise ValueError(f"{struct_ident} has no fields to build")

    builder_ident = f"{struct_ident}Builder"
    mandatory = [f for f in fields if not f.optional]
    args = ", ".join(f"{f.name}: impl Into<{f.ty}>" for f in mandatory)

    lines = [f"impl {struct_ident} {{", f"    pub fn new({args}) -> Self {{", "        Self {"]
    lines.extend(indent_lines(_field_initializers(fields), 3))
    lines.extend(["        }", "    }"])
    lines.append(f"    pub fn builder({args}) -> {builder_ident} {{")
    lines.append(f"        {builder_ident} {{")
    lines.extend(indent_lines(_field_initializers(fields), 3))
    lines.extend(["        }", "    }", "}"])

    lines.append("#[derive(Debug, Clone)]")
    lines.append(f"pub struct {builder_ident} {{")
    for f in fields:
        lines.append(f"    {f.name}: {f.field_type},")
    lines.append("}")

    lines.append(f"impl {builder_ident} {{")
    for f in fields:
        if not f.optional:
            continue
        lines.append(f"    pub fn {f.name}(mut self, {f.name}: impl Into<{f.ty}>) -> Self {{")
        lines.append(f"        self.{f.name} = Some({f.name}.into());")
        lines.append("        self")
        lines.append("    }")
    lines.append(f"    pub fn build(self) -> {struct_ident} {{")
    lines.append(f"        {struct_ident} {{")
    for f in fields:
        lines.append(f"            {f.name}: self.{f.name},")
    lines.extend(["        }", "    }", "}"])
    return lines


# ===--- Structs ---=== #

_DOC_ANCHORS = {
    DATATYPE_TYPE: "type",
    DATATYPE_COMMAND: "method",
    DATATYPE_EVENT: "event",
}


def is_included(
    options: GeneratorOptions, item: Domain | DomainDatatype | Param
) -> bool:
    if item.deprecated and not options.with_deprecated:
        return False
    if item.experimental and not options.with_experimental:
        return False
    return True


def datatype_description(domain: Domain, dt: DomainDatatype) -> str:
    link = f"[{dt.name}]({DOC_BASE_URL}/{domain.name}/#{_DOC_ANCHORS[dt.kind]}-{dt.name})"
    if dt.description:
        return f"{dt.description}\n{link}"
    return link


def generate_wrapper(
    ctx: ResolutionContext,
    options: GeneratorOptions,
    domain: Domain,
    dt: DomainDatatype,
    struct_ident: str,
) -> list[str]:
    """Newtype over the aliased type of a property-less type definition."""
    extends = dt.extends if dt.extends is not None else PdlType("object")
    lines: list[str] = []
    enum_variants = hoisted_enum_variants(extends)

    wrapped, size = generate_field_type(ctx, domain.name, dt.name, dt.name, extends)
    record_size(ctx, size_key(domain.name, struct_ident), size)

    derives = ["Debug", "Clone", "PartialEq"]
    if extends.is_integer or extends.is_string:
        derives.extend(["Eq", "Hash"])
    if extends.kind != "ref":
        derives.append("Default")
    lines.append(f"#[derive({', '.join(derives)})]")
    lines.extend(options.serde.derives())
    lines.append(f"pub struct {struct_ident}({wrapped});")
    lines.extend(
        [
            f"impl {struct_ident} {{",
            f"    pub fn new(val: impl Into<{wrapped}>) -> Self {{",
            f"        {struct_ident}(val.into())",
            "    }",
            f"    pub fn inner(&self) -> &{wrapped} {{",
            "        &self.0",
            "    }",
            "}",
            f"impl From<{wrapped}> for {struct_ident} {{",
            f"    fn from(val: {wrapped}) -> Self {{",
            f"        {struct_ident}(val)",
            "    }",
            "}",
        ]
    )
    if extends.is_string:
        lines.extend(
            [
                f"impl AsRef<str> for {struct_ident} {{",
                "    fn as_ref(&self) -> &str {",
                "        self.0.as_str()",
                "    }",
                "}",
            ]
        )
    if enum_variants is not None:
        lines.extend(
            generate_enum(
                ctx,
                options,
                domain.name,
                subenum_name(dt.name, dt.name),
                enum_variants,
            )
        )
    return lines


def generate_struct(
    ctx: ResolutionContext,
    options: GeneratorOptions,
    domain: Domain,
    dt: DomainDatatype,
    struct_ident: str,
    params: list[Param],
    parent: str | None = None,
) -> list[str]:
    """Generate the struct for a datatype plus enums hoisted from its params.

    `parent` names the hoisted enums and defaults to the datatype name; the
    `Returns` record of a command passes its own name so its enums do not
    clash with those of the params record.
    """
    if parent is None:
        parent = dt.name
    serde = options.serde
    type_key = size_key(domain.name, struct_ident)
    enum_definitions: list[str] = []
    fields: list[FieldDefinition] = []

    for param in params:
        enum_variants = hoisted_enum_variants(param.type)
        if enum_variants is not None:
            enum_definitions.extend(
                generate_enum(
                    ctx,
                    options,
                    domain.name,
                    subenum_name(parent, param.name),
                    enum_variants,
                    description=param.description,
                    deprecated=param.deprecated,
                )
            )

        rust_type, size = generate_field_type(
            ctx, domain.name, parent, param.name, param.type
        )
        record_size(ctx, type_key, size)
        fields.append(
            FieldDefinition(
                name=field_name(param.name),
                raw_name=param.name,
                ty=rust_type,
                optional=param.optional,
                deprecated=param.deprecated,
                description=param.description,
            )
        )

    lines = doc_attr(datatype_description(domain, dt))
    if dt.deprecated:
        lines.append("#[deprecated]")

    if not fields:
        if dt.kind == DATATYPE_TYPE:
            lines.extend(generate_wrapper(ctx, options, domain, dt, struct_ident))
            return lines
        ctx.type_size[type_key] = 0
        lines.append("#[derive(Debug, Clone, PartialEq, Default)]")
        lines.extend(serde.derives())
        lines.append(f"pub struct {struct_ident} {{}}")
        return lines

    if any(not f.optional for f in fields):
        lines.append("#[derive(Debug, Clone, PartialEq)]")
    else:
        lines.append("#[derive(Debug, Clone, PartialEq, Default)]")
    lines.extend(serde.derives())
    lines.append(f"pub struct {struct_ident} {{")
    for definition in fields:
        lines.extend(indent_lines(generate_field_definition(definition, serde)))
    lines.append("}")
    lines.extend(enum_definitions)

    if dt.kind in (DATATYPE_COMMAND, DATATYPE_TYPE):
        lines.extend(generate_builder(struct_ident, fields))
    return lines


def generate_method_impl(options: GeneratorOptions, ident: str) -> list[str]:
    return [
        f"impl {options.types_crate}::Method for {ident} {{",
        "    fn identifier(&self) -> ::std::borrow::Cow<'static, str> {",
        "        Self::IDENTIFIER.into()",
        "    }",
        "}",
    ]


def generate_datatype(
    ctx: ResolutionContext,
    options: GeneratorOptions,
    domain: Domain,
    dt: DomainDatatype,
) -> list[str]:
    """Generate every Rust item for one type definition, command or event."""
    ident = dt.ident_name()
    identifier = [
        f"impl {ident} {{",
        f"    pub const IDENTIFIER: &'static str = {rust_string(dt.raw_name(domain.name))};",
        "}",
    ]

    variants = dt.as_enum()
    if variants is not None:
        lines = generate_enum(
            ctx,
            options,
            domain.name,
            ident,
            variants,
            description=datatype_description(domain, dt),
            deprecated=dt.deprecated,
        )
        return lines + identifier

    params = [p for p in dt.params if is_included(options, p)]
    lines = generate_struct(ctx, options, domain, dt, ident, params)
    lines.extend(identifier)

    if dt.kind == DATATYPE_TYPE:
        return lines
    if dt.kind == DATATYPE_EVENT:
        lines.extend(generate_method_impl(options, ident))
        return lines
    if dt.kind == DATATYPE_COMMAND:
        lines.extend(generate_method_impl(options, ident))
        returns_ident = dt.returns_name()
        returns = [p for p in dt.returns if is_included(options, p)]
        lines.extend(
            generate_struct(
                ctx, options, domain, dt, returns_ident, returns, parent=returns_ident
            )
        )
        lines.extend(
            [
                f"impl {options.types_crate}::Command for {ident} {{",
                f"    type Response = {returns_ident};",
                "}",
            ]
        )
        return lines
    raise ValueError(f"Unknown datatype kind: {dt.kind}")


# ===--- Modules ---=== #

_ITEM_DECL_RE = re.compile(r"^pub (?:struct|enum) (\w+)")


def generate_domain(
    ctx: ResolutionContext, options: GeneratorOptions, domain: Domain
) -> list[str]:
    """Items of one domain module; every item name must be unique in it.

    Raises:
        ResolutionError: Two datatypes emit an item with the same name, e.g.
            a hoisted `BarKind` enum next to a declared `BarKind` type.
    """
    lines = list(options.serde.imports())
    declared_by: dict[str, str] = {}
    for dt in domain.datatypes:
        if not is_included(options, dt):
            continue
        dt_lines = generate_datatype(ctx, options, domain, dt)
        for line in dt_lines:
            match = _ITEM_DECL_RE.match(line)
            if match is None:
                continue
            item = match.group(1)
            if item in declared_by:
                raise ResolutionError(
                    f"Duplicate item {item} in domain {domain.name} "
                    f"(from {declared_by[item]} and {dt.raw_name(domain.name)})"
                )
            declared_by[item] = dt.raw_name(domain.name)
        lines.extend(dt_lines)
    return lines


def generate_types(
    ctx: ResolutionContext, options: GeneratorOptions, domains: tuple[Domain, ...]
) -> list[str]:
    """One `pub mod` per included domain."""
    lines: list[str] = []
    for domain in domains:
        if not is_included(options, domain):
            continue
        lines.extend(doc_attr(domain.description))
        if domain.deprecated:
            lines.append("#[deprecated]")
        lines.append(f"pub mod {domain_module_name(domain.name)} {{")
        lines.extend(indent_lines(generate_domain(ctx, options, domain)))
        lines.append("}")
    return lines


def generate_protocol_module(
    ctx: ResolutionContext,
    options: GeneratorOptions,
    idx: int,
    protocol: Protocol,
) -> list[str]:
    lines = [
        "#[allow(clippy::too_many_arguments)]",
        "#[allow(deprecated)]",
        f"pub mod {ctx.protocol_mods[idx]} {{",
        '    #[doc = "The version of this protocol definition"]',
        f"    pub const VERSION: &str = {rust_string(str(protocol.version))};",
    ]
    lines.extend(indent_lines(generate_types(ctx, options, protocol.domains)))
    lines.append("}")
    return lines


# ===--- Event union ---=== #


@dataclass(frozen=True)
class EventVariant:
    """One case of the global `Event` union.

    Attributes:
        name: Case identifier, CamelDomain + CamelEvent.
        identifier: Wire method name, e.g. "Page.frameNavigated".
        payload: Path of the event struct relative to the `events` module.
        size: Finalized size of the event struct in size units.
        boxed: Payload is wrapped in Box (size >= box threshold).
        deprecated: The event is deprecated.
    """

    name: str
    identifier: str
    payload: str
    size: int
    boxed: bool
    deprecated: bool = False

    @property
    def payload_type(self) -> str:
        if self.boxed:
            return f"Box<{self.payload}>"
        return self.payload


def collect_event_variants(
    ctx: ResolutionContext,
    options: GeneratorOptions,
    protocols: list[Protocol],
) -> list[EventVariant]:
    """Collect every included event of every document, in document order.

    Must run after resolve_deferred_sizes: the boxing decision reads the
    finalized sizes.
    """
    if ctx.ref_sizes:
        raise ResolutionError("Deferred sizes must be resolved before the event union")

    variants: list[EventVariant] = []
    for protocol in protocols:
        for domain in protocol.domains:
            if not is_included(options, domain):
                continue
            domain_idx = ctx.domains.get(domain.name)
            if domain_idx is None:
                raise ResolutionError(f"No matching domain registered for {domain.name}")
            for dt in domain.of_kind(DATATYPE_EVENT):
                if not is_included(options, dt):
                    continue
                ident = dt.ident_name()
                size = ctx.type_size.get(size_key(domain.name, ident))
                if size is None:
                    raise ResolutionError(
                        f"No type found for event {dt.raw_name(domain.name)}"
                    )
                payload = (
                    f"super::{ctx.protocol_mods[domain_idx]}::"
                    f"{domain_module_name(domain.name)}::{ident}"
                )
                variants.append(
                    EventVariant(
                        name=f"{to_camel_case(domain.name)}{to_camel_case(dt.name)}",
                        identifier=dt.raw_name(domain.name),
                        payload=payload,
                        size=size,
                        boxed=size >= options.box_threshold,
                        deprecated=dt.deprecated,
                    )
                )
    return variants


def _event_match(variants: list[EventVariant], arm: str) -> list[str]:
    if not variants:
        return ["match *self {}"]
    lines = ["match self {"]
    for v in variants:
        lines.append(f"    Event::{v.name}(inner) => {arm},")
    lines.append("}")
    return lines


def generate_event_json_support(
    options: GeneratorOptions, variants: list[EventVariant]
) -> list[str]:
    serde = options.serde
    if not serde.enabled:
        return []
    crate = options.types_crate
    lines = list(serde.gate())
    lines.extend(
        [
            "impl Event {",
            "    pub fn to_params(&self) -> serde_json::Result<serde_json::Value> {",
        ]
    )
    lines.extend(indent_lines(_event_match(variants, "serde_json::to_value(inner)"), 2))
    lines.extend(["    }", "}"])
    lines.extend(serde.gate())
    lines.extend(
        [
            f"impl ::std::convert::TryInto<{crate}::CdpEvent> for Event {{",
            "    type Error = serde_json::Error;",
            f"    fn try_into(self) -> Result<{crate}::CdpEvent, Self::Error> {{",
            f"        use {crate}::Method;",
            f"        Ok({crate}::CdpEvent {{",
            "            method: self.identifier(),",
            "            params: self.to_params()?,",
            "        })",
            "    }",
            "}",
        ]
    )
    return lines


def generate_event_enum(
    options: GeneratorOptions, variants: list[EventVariant]
) -> list[str]:
    serde = options.serde
    lines = ["#[derive(Debug, Clone, PartialEq)]"]
    lines.extend(serde.derives())
    lines.extend(serde.tag("method"))
    lines.append("pub enum Event {")
    for v in variants:
        lines.extend(indent_lines(serde.rename(v.identifier)))
        if v.deprecated:
            lines.append("    #[deprecated]")
        lines.append(f"    {v.name}({v.payload_type}),")
    lines.append("}")

    lines.extend(
        [
            f"impl {options.types_crate}::Method for Event {{",
            "    fn identifier(&self) -> ::std::borrow::Cow<'static, str> {",
        ]
    )
    lines.extend(indent_lines(_event_match(variants, "inner.identifier()"), 2))
    lines.extend(["    }", "}"])
    lines.extend(generate_event_json_support(options, variants))
    return lines


# ===--- Output assembly ---=== #


@dataclass(frozen=True)
class GeneratedOutput:
    """Result of the pure generation pipeline.

    Attributes:
        lines: Generated Rust source lines, without the file header.
        context: The drained ResolutionContext (final sizes, domain index).
        event_variants: Cases of the global Event union, in output order.
    """

    lines: tuple[str, ...]
    context: ResolutionContext
    event_variants: tuple[EventVariant, ...]


def assemble_output_lines(
    options: GeneratorOptions, event_lines: list[str], module_lines: list[str]
) -> list[str]:
    lines = [f"pub mod {options.target_mod} {{", "    pub use events::*;", "    pub mod events {"]
    lines.extend(indent_lines(options.serde.imports(), 2))
    lines.extend(indent_lines(event_lines, 2))
    lines.append("    }")
    lines.extend(indent_lines(module_lines))
    lines.append("}")
    return lines


def generate_output(
    protocols: list[Protocol],
    protocol_mods: list[str],
    options: GeneratorOptions,
) -> GeneratedOutput:
    """Run the generation engine over already-parsed documents.

    Stages, strictly in order: register domains -> generate every document's
    domain modules -> drain deferred sizes -> assemble the Event union.

    Raises:
        ResolutionError: Duplicate or unknown domain, unresolvable size
            reference, or an event without a registered size.
    """
    ctx = ResolutionContext()
    register_domains(ctx, protocols, protocol_mods)

    module_lines: list[str] = []
    for idx, protocol in enumerate(protocols):
        module_lines.extend(generate_protocol_module(ctx, options, idx, protocol))

    resolve_deferred_sizes(ctx)

    variants = collect_event_variants(ctx, options, protocols)
    event_lines = generate_event_enum(options, variants)
    lines = assemble_output_lines(options, event_lines, module_lines)
    return GeneratedOutput(
        lines=tuple(lines),
        context=ctx,
        event_variants=tuple(variants),
    )


# ===--- Writer ---=== #


@dataclass(frozen=True)
class ProtocolSource:
    """One input document as listed in the output header.

    Attributes:
        module: Rust module generated for the document, e.g. "js_protocol".
        filename: Input file name, e.g. "js_protocol.pdl".
        version: Protocol version declared by the document.
    """

    module: str
    filename: str
    version: ProtocolVersion


@dataclass(frozen=True)
class WriteConfig:
    """Shared metadata embedded in the generated file header.

    Attributes:
        target_mod: Top-level module name; the file is `<target_mod>.rs`.
        sources: Input documents in generation order. Must be non-empty.
        serde_label: Human-readable serialization mode, e.g. "always".
    """

    target_mod: str
    sources: tuple[ProtocolSource, ...]
    serde_label: str = SERDE_ALWAYS


@dataclass(frozen=True)
class FileWriteResult:
    """Result of writing the generated file.

    Attributes:
        filename: Filename written, e.g. "cdp.rs".
        path: Absolute path of the written file.
        line_count: Number of newline characters in the written content.
        byte_count: Number of bytes written (UTF-8 encoded).
    """

    filename: str
    path: Path
    line_count: int
    byte_count: int


_HEADER_BORDER: str = "// x-------------------------------------------x //"


def format_file_header(config: WriteConfig) -> list[str]:
    """Return comment lines for the generated file header.

    Output format:
        // x-------------------------------------------x //
        // | Rust types for the Chrome DevTools Protocol
        // | Generated by pdlgen. Do not edit.
        // | Source: js_protocol.pdl 1.3 (mod js_protocol)
        // | Source: browser_protocol.pdl 1.3 (mod browser_protocol)
        // | Module: cdp
        // | Serde: always
        // x-------------------------------------------x //

    Sources keep generation order. No timestamps or absolute paths, so the
    header is identical across runs on the same inputs.

    Raises:
        ValueError: If config.sources is empty.
    """
    if not config.sources:
        raise ValueError("sources must not be empty")

    lines = [
        _HEADER_BORDER,
        "// | Rust types for the Chrome DevTools Protocol",
        "// | Generated by pdlgen. Do not edit.",
    ]
    for source in config.sources:
        lines.append(
            f"// | Source: {source.filename} {source.version} (mod {source.module})"
        )
    lines.append(f"// | Module: {config.target_mod}")
    lines.append(f"// | Serde: {config.serde_label}")
    lines.append(_HEADER_BORDER)
    return lines


def assemble_output_source(config: WriteConfig, content_lines: tuple[str, ...]) -> str:
    parts = list(format_file_header(config))
    if content_lines:
        parts.append("")
        parts.extend(content_lines)
    return "\n".join(parts) + "\n"


def write_output(
    output_dir: Path, config: WriteConfig, content_lines: tuple[str, ...]
) -> FileWriteResult:
    """Write `<target_mod>.rs` into output_dir (created if absent).

    Raises:
        ValueError: Propagated from format_file_header.
        OSError: Propagated directly if the filesystem write fails.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    content = assemble_output_source(config, content_lines)
    filename = f"{config.target_mod}.rs"
    file_path = output_dir / filename
    file_path.write_text(content, encoding="utf-8")
    resolved = file_path.resolve()
    return FileWriteResult(
        filename=filename,
        path=resolved,
        line_count=content.count("\n"),
        byte_count=len(resolved.read_bytes()),
    )


def build_write_config(
    options: GeneratorOptions, inputs: tuple[Path, ...], protocols: list[Protocol]
) -> WriteConfig:
    sources = tuple(
        ProtocolSource(
            module=protocol_module_name(path),
            filename=Path(path).name,
            version=protocol.version,
        )
        for path, protocol in zip(inputs, protocols)
    )
    return WriteConfig(
        target_mod=options.target_mod,
        sources=sources,
        serde_label=options.serde.label,
    )


# ===--- Formatter ---=== #

RUSTFMT_COMMAND: tuple[str, ...] = ("rustfmt", "--emit", "files", "--edition", "2018")


def run_rustfmt(output_dir: Path) -> tuple[Path, ...]:
    """Format every `.rs` file in output_dir in place with rustfmt.

    Raises:
        FormatterError: rustfmt is missing (returncode 1) or exits non-zero
            (returncode is rustfmt's exit status). No retries.
    """
    formatted: list[Path] = []
    for path in sorted(Path(output_dir).glob("*.rs")):
        try:
            result = subprocess.run(
                [*RUSTFMT_COMMAND, str(path)],
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as err:
            raise FormatterError(f"error running rustfmt: {err}", returncode=1) from err
        if result.returncode != 0:
            raise FormatterError(
                f"rustfmt failed on {path.name} with exit status {result.returncode}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        formatted.append(path)
    return tuple(formatted)


# ===--- Pipeline ---=== #


def load_protocols(inputs: tuple[Path, ...]) -> list[Protocol]:
    protocols = []
    for path in inputs:
        print(f"Parsing: {path}")
        protocol = load_protocol(path)
        print(f"  Version {protocol.version}: {len(protocol.domains)} domains")
        protocols.append(protocol)
    return protocols


def run_generate(config: GenerateConfig) -> FileWriteResult:
    """Execute the complete generation pipeline for a GenerateConfig.

    parse -> generate (register, synthesize, resolve sizes, event union)
    -> write -> format -> summary. Nothing is written when generation fails.

    Raises:
        OSError: Input not readable or output not writable.
        PdlParseError: Malformed input document.
        ResolutionError: Internally inconsistent protocol set.
        FormatterError: rustfmt missing or failing.
    """
    protocols = load_protocols(config.inputs)
    protocol_mods = [protocol_module_name(path) for path in config.inputs]

    output = generate_output(protocols, protocol_mods, config.options)
    ctx = output.context
    print(
        f"  Registered: {len(ctx.domains)} domains across {len(protocols)} documents"
    )
    print(f"  Sizes: {len(ctx.type_size)} types resolved")

    write_config = build_write_config(config.options, config.inputs, protocols)
    result = write_output(config.output_dir, write_config, output.lines)
    print(f"  Written: {result.filename}, {result.line_count} lines to {config.output_dir}")

    if config.run_formatter:
        formatted = run_rustfmt(config.output_dir)
        print(f"  Formatted: {len(formatted)} files in {config.output_dir}")

    summary = build_generation_summary(
        write_config, config.options, protocols, output, result
    )
    print_generation_summary(summary)
    return result


# ===--- Summary report ---=== #


@dataclass(frozen=True)
class GenerationCounts:
    """Counts of generated items, after inclusion filters.

    Attributes:
        domains: Domain modules generated.
        types: Type definitions generated (bare enums, structs, wrappers).
        commands: Commands generated (each with a Returns struct).
        events: Events generated (one Event union case each).
        boxed_events: Event union cases whose payload is boxed.
    """

    domains: int
    types: int
    commands: int
    events: int
    boxed_events: int


@dataclass(frozen=True)
class GenerationSummary:
    target_label: str
    sources: tuple[str, ...]
    output_file: str
    counts: GenerationCounts
    file: FileWriteResult


def build_target_label(options: GeneratorOptions) -> str:
    experimental = "with" if options.with_experimental else "without"
    deprecated = "with" if options.with_deprecated else "without"
    return (
        f"mod {options.target_mod} ({experimental} experimental, "
        f"{deprecated} deprecated, serde: {options.serde.label})"
    )


def build_generation_counts(
    options: GeneratorOptions,
    protocols: list[Protocol],
    event_variants: tuple[EventVariant, ...],
) -> GenerationCounts:
    domains = [
        d for p in protocols for d in p.domains if is_included(options, d)
    ]

    def _count(kind: str) -> int:
        return sum(
            1 for d in domains for dt in d.of_kind(kind) if is_included(options, dt)
        )

    events = _count(DATATYPE_EVENT)
    assert events == len(event_variants), (
        f"Event union out of sync: {events} events, {len(event_variants)} variants"
    )
    return GenerationCounts(
        domains=len(domains),
        types=_count(DATATYPE_TYPE),
        commands=_count(DATATYPE_COMMAND),
        events=events,
        boxed_events=sum(1 for v in event_variants if v.boxed),
    )


def build_generation_summary(
    write_config: WriteConfig,
    options: GeneratorOptions,
    protocols: list[Protocol],
    output: GeneratedOutput,
    write_result: FileWriteResult,
) -> GenerationSummary:
    return GenerationSummary(
        target_label=build_target_label(options),
        sources=tuple(
            f"{s.filename} {s.version}" for s in write_config.sources
        ),
        output_file=str(write_result.path),
        counts=build_generation_counts(options, protocols, output.event_variants),
        file=write_result,
    )


def format_generation_summary(summary: GenerationSummary) -> str:
    """Render a GenerationSummary as the console report.

    Output format:

        Rust protocol types generated:

          Target:     mod cdp (with experimental, without deprecated, serde: always)
          Sources:    js_protocol.pdl 1.3, browser_protocol.pdl 1.3
          Output:     /abs/out/cdp.rs

          Items generated:
            Domains:         2
            Types:          14
            Commands:        6
            Events:          5  (1 boxed)

          Total: 1,234 lines, 45,678 bytes

    The "(N boxed)" annotation appears only when N > 0. Returns a string with
    exactly one trailing newline.
    """
    counts = summary.counts
    lines = ["Rust protocol types generated:", ""]
    lines.append(f"  Target:     {summary.target_label}")
    lines.append(f"  Sources:    {', '.join(summary.sources)}")
    lines.append(f"  Output:     {summary.output_file}")
    lines.append("")
    lines.append("  Items generated:")
    lines.append(f"    {'Domains:':<12}{counts.domains:>6}")
    lines.append(f"    {'Types:':<12}{counts.types:>6}")
    lines.append(f"    {'Commands:':<12}{counts.commands:>6}")
    events_row = f"    {'Events:':<12}{counts.events:>6}"
    if counts.boxed_events > 0:
        events_row += f"  ({counts.boxed_events} boxed)"
    lines.append(events_row)
    lines.append("")
    lines.append(
        f"  Total: {summary.file.line_count:,} lines, {summary.file.byte_count:,} bytes"
    )
    lines.append("")
    return "\n".join(lines)


def print_generation_summary(summary: GenerationSummary) -> None:
    print(format_generation_summary(summary), end="")


# ===--- Discovery ---=== #


@dataclass(frozen=True)
class DomainSummary:
    """One row of the --list-domains table.

    Attributes:
        name: Domain name, e.g. "Page".
        module: Protocol module of the defining document, e.g. "browser_protocol".
        version: Version of the defining document.
        type_count: Type definitions in the domain (unfiltered).
        command_count: Commands in the domain (unfiltered).
        event_count: Events in the domain (unfiltered).
        experimental: Domain is marked experimental.
        deprecated: Domain is marked deprecated.
        depends: Domains named by `depends on`.
    """

    name: str
    module: str
    version: ProtocolVersion
    type_count: int
    command_count: int
    event_count: int
    experimental: bool
    deprecated: bool
    depends: tuple[str, ...]


@dataclass(frozen=True)
class TypeEntry:
    """A type definition name and its generated shape: enum, struct or alias."""

    name: str
    category: str


@dataclass(frozen=True)
class DomainDetail:
    summary: DomainSummary
    types: tuple[TypeEntry, ...]
    commands: tuple[str, ...]
    events: tuple[str, ...]


def _type_category(dt: DomainDatatype) -> str:
    if dt.as_enum() is not None:
        return "enum"
    if dt.params:
        return "struct"
    return "alias"


def _domain_summary(domain: Domain, module: str, version: ProtocolVersion) -> DomainSummary:
    return DomainSummary(
        name=domain.name,
        module=module,
        version=version,
        type_count=len(domain.of_kind(DATATYPE_TYPE)),
        command_count=len(domain.of_kind(DATATYPE_COMMAND)),
        event_count=len(domain.of_kind(DATATYPE_EVENT)),
        experimental=domain.experimental,
        deprecated=domain.deprecated,
        depends=domain.depends,
    )


def gather_domain_summaries(
    protocols: list[Protocol], protocol_mods: list[str]
) -> list[DomainSummary]:
    return [
        _domain_summary(domain, module, protocol.version)
        for protocol, module in zip(protocols, protocol_mods)
        for domain in protocol.domains
    ]


def filter_domains_by_text(
    summaries: list[DomainSummary], text: str
) -> list[DomainSummary]:
    needle = text.lower()
    return [s for s in summaries if needle in s.name.lower()]


def gather_domain_detail(
    protocols: list[Protocol], protocol_mods: list[str], name: str
) -> DomainDetail | None:
    for protocol, module in zip(protocols, protocol_mods):
        for domain in protocol.domains:
            if domain.name != name:
                continue
            return DomainDetail(
                summary=_domain_summary(domain, module, protocol.version),
                types=tuple(
                    TypeEntry(dt.name, _type_category(dt))
                    for dt in domain.of_kind(DATATYPE_TYPE)
                ),
                commands=tuple(dt.name for dt in domain.of_kind(DATATYPE_COMMAND)),
                events=tuple(dt.name for dt in domain.of_kind(DATATYPE_EVENT)),
            )
    return None


def _flags_label(summary: DomainSummary) -> str:
    flags = []
    if summary.experimental:
        flags.append("experimental")
    if summary.deprecated:
        flags.append("deprecated")
    return ", ".join(flags)


def format_domains_table(summaries: list[DomainSummary]) -> str:
    """Return the complete --list-domains output as a single string.

    Output format:

        3 domains:

          Runtime    js_protocol       1.3   6 types   2 cmds   2 events
          Page       browser_protocol  1.3   4 types   2 cmds   2 events  experimental

    Name and module column widths follow the widest value. Filtering is NOT
    applied here; callers pre-filter with filter_domains_by_text.
    """
    lines = [f"{len(summaries)} domains:", ""]
    if not summaries:
        lines.append("")
        return "\n".join(lines)

    name_width = max(len(s.name) for s in summaries)
    module_width = max(len(s.module) for s in summaries)
    for s in summaries:
        row = (
            f"  {s.name.ljust(name_width)}  {s.module.ljust(module_width)}  "
            f"{str(s.version):<5} {f'{s.type_count} types':<9} "
            f"{f'{s.command_count} cmds':<8} {s.event_count} events"
        )
        flags = _flags_label(s)
        if flags:
            row += f"  {flags}"
        lines.append(row.rstrip())
    lines.append("")
    return "\n".join(lines)


def format_domain_detail(detail: DomainDetail) -> str:
    """Return the complete --info output for one domain as a string.

    Output format:

        Page (browser_protocol 1.3, experimental)
          Depends:  Runtime, Debugger

          Types (4):
            FrameId         alias
            Frame           struct
            ...

          Commands (2):
            navigate
            ...

          Events (2):
            frameNavigated
            ...
    """
    s = detail.summary
    qualifiers = [f"{s.module} {s.version}"]
    flags = _flags_label(s)
    if flags:
        qualifiers.append(flags)
    lines = [f"{s.name} ({', '.join(qualifiers)})"]
    if s.depends:
        lines.append(f"  Depends:  {', '.join(s.depends)}")

    lines.append("")
    lines.append(f"  Types ({len(detail.types)}):")
    name_width = max((len(e.name) for e in detail.types), default=0)
    for entry in detail.types:
        lines.append(f"    {entry.name.ljust(name_width)}  {entry.category}")

    lines.append("")
    lines.append(f"  Commands ({len(detail.commands)}):")
    for name in detail.commands:
        lines.append(f"    {name}")

    lines.append("")
    lines.append(f"  Events ({len(detail.events)}):")
    for name in detail.events:
        lines.append(f"    {name}")

    lines.append("")
    return "\n".join(lines)


def run_discovery(config: DiscoveryConfig) -> None:
    """Execute the discovery command specified in config.

    dispatch table:
      "list-domains" -> gather_domain_summaries -> [filter] -> format_domains_table
      "info"         -> gather_domain_detail -> [None check] -> format_domain_detail

    Raises:
        SystemExit(1): config.command == "info" and the domain is unknown.
    """
    protocols = [load_protocol(path) for path in config.inputs]
    protocol_mods = [protocol_module_name(path) for path in config.inputs]

    if config.command == "list-domains":
        summaries = gather_domain_summaries(protocols, protocol_mods)
        if config.filter_text is not None:
            summaries = filter_domains_by_text(summaries, config.filter_text)
        print(format_domains_table(summaries), end="")

    elif config.command == "info":
        assert config.info_domain is not None
        detail = gather_domain_detail(protocols, protocol_mods, config.info_domain)
        if detail is None:
            print(f"Error: domain '{config.info_domain}' not found", file=sys.stderr)
            raise SystemExit(1)
        print(format_domain_detail(detail), end="")

    else:
        raise ValueError(f"Unknown discovery command: {config.command}")


# ===--- Main ---=== #


def main(argv: list[str] | None = None) -> None:
    try:
        config = build_config(argv)
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err

    if isinstance(config, DiscoveryConfig):
        try:
            run_discovery(config)
        except (OSError, PdlParseError) as err:
            print(f"Error: {err}")
            raise SystemExit(1) from err
        return

    try:
        run_generate(config)
    except (OSError, PdlParseError) as err:
        print(f"Error: {err}")
        raise SystemExit(1) from err
    except FormatterError as err:
        print(f"Error: {err}")
        if err.stderr:
            print(err.stderr, file=sys.stderr, end="")
        raise SystemExit(err.returncode) from err
    except (RuntimeError, ValueError) as err:
        print(f"Internal error: {err}")
        raise SystemExit(1) from err


if __name__ == "__main__":
    main()
