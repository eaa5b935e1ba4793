import argparse
import shutil
import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import pdlgen  # noqa: E402

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def existing_paths(tmp_path: Path) -> dict[str, Path]:
    js_pdl = tmp_path / "js_protocol.pdl"
    shutil.copyfile(FIXTURES_DIR / "js_protocol.pdl", js_pdl)

    browser_pdl = tmp_path / "browser_protocol.pdl"
    shutil.copyfile(FIXTURES_DIR / "browser_protocol.pdl", browser_pdl)

    output_dir = tmp_path / "out"
    return {
        "js_pdl": js_pdl,
        "browser_pdl": browser_pdl,
        "output_dir": output_dir,
    }


@pytest.fixture
def missing_path(tmp_path: Path) -> Path:
    return tmp_path / "missing.pdl"


@pytest.fixture
def make_args(existing_paths: dict[str, Path]) -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "pdls": [existing_paths["js_pdl"], existing_paths["browser_pdl"]],
            "out_dir": existing_paths["output_dir"],
            "target_mod": pdlgen.DEFAULT_TARGET_MOD,
            "experimental": True,
            "deprecated": False,
            "no_serde": False,
            "serde_feature": None,
            "types_crate": pdlgen.DEFAULT_TYPES_CRATE,
            "box_threshold": pdlgen.LARGE_VARIANT_THRESHOLD,
            "skip_fmt": False,
            "list_domains": False,
            "info": None,
            "filter": None,
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args


@pytest.fixture
def make_protocol() -> Callable[..., pdlgen.Protocol]:
    """Parse a PDL body (domains only) under a fixed 1.3 version block."""

    def _make_protocol(body: str, source: str = "test.pdl") -> pdlgen.Protocol:
        header = "version\n  major 1\n  minor 3\n\n"
        return pdlgen.parse_pdl(header + textwrap.dedent(body), source)

    return _make_protocol


@pytest.fixture
def fixture_protocols() -> tuple[list[pdlgen.Protocol], list[str]]:
    paths = [FIXTURES_DIR / "js_protocol.pdl", FIXTURES_DIR / "browser_protocol.pdl"]
    protocols = [pdlgen.load_protocol(path) for path in paths]
    return protocols, [pdlgen.protocol_module_name(path) for path in paths]

