from __future__ import annotations

import os
import shutil
import subprocess
import sys
from pathlib import Path


def _tool_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _fixture(name: str) -> Path:
    return _tool_root() / "tests" / "fixtures" / name


def _run(
    args: list[str],
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    run_cwd = _tool_root() if cwd is None else cwd
    return subprocess.run(
        [sys.executable, "pdlgen.py", *args],
        cwd=run_cwd,
        capture_output=True,
        text=True,
        check=False,
        env=env,
    )


def _env_without_out_dir() -> dict[str, str]:
    env = dict(os.environ)
    env.pop("OUT_DIR", None)
    return env


def _fixture_inputs() -> list[str]:
    return [
        str(_fixture("js_protocol.pdl").resolve()),
        str(_fixture("browser_protocol.pdl").resolve()),
    ]


def test_t_01_generate_writes_single_rust_file(tmp_path: Path) -> None:
    output_dir = tmp_path / "generated"

    result = _run(["--skip-fmt", "--out-dir", str(output_dir.resolve()), *_fixture_inputs()])

    assert result.returncode == 0, result.stdout + result.stderr
    assert "Rust protocol types generated:" in result.stdout
    assert "Total:" in result.stdout
    assert [p.name for p in output_dir.iterdir()] == ["cdp.rs"]
    content = (output_dir / "cdp.rs").read_text(encoding="utf-8")
    assert "pub mod js_protocol {" in content
    assert "pub mod browser_protocol {" in content
    assert "pub enum Event {" in content


def test_t_02_generate_uses_out_dir_environment(tmp_path: Path) -> None:
    env = _env_without_out_dir()
    env["OUT_DIR"] = str(tmp_path / "cargo")

    result = _run(["--skip-fmt", "--target-mod", "devtools", *_fixture_inputs()], env=env)

    assert result.returncode == 0, result.stdout + result.stderr
    assert (tmp_path / "cargo" / "devtools.rs").exists()


def test_t_03_missing_out_dir_is_a_config_error() -> None:
    result = _run(["--skip-fmt", *_fixture_inputs()], env=_env_without_out_dir())

    assert result.returncode == 1
    assert "MISSING_OUT_DIR" in result.stdout
    assert "Traceback (most recent call last)" not in result.stdout + result.stderr


def test_t_04_list_domains_is_read_only(tmp_path: Path) -> None:
    env = _env_without_out_dir()
    env["OUT_DIR"] = str(tmp_path / "cargo")

    result = _run(["--list-domains", *_fixture_inputs()], env=env)

    assert result.returncode == 0
    assert result.stdout.startswith("4 domains:")
    assert "browser_protocol" in result.stdout
    assert not (tmp_path / "cargo").exists()


def test_t_05_info_prints_domain_detail() -> None:
    result = _run(["--info", "Runtime", *_fixture_inputs()])

    assert result.returncode == 0
    assert result.stdout.startswith("Runtime (js_protocol 1.3)")
    assert "    RemoteObject" in result.stdout


def test_t_06_unknown_flag_returns_argparse_usage_code() -> None:
    assert _run(["--not-a-flag"]).returncode == 2


def test_t_07_conflicting_serde_flags_return_usage_error(tmp_path: Path) -> None:
    result = _run(
        ["--no-serde", "--serde-feature", "serde0", "--out-dir", str(tmp_path), *_fixture_inputs()]
    )

    assert result.returncode == 2


def test_t_08_standalone_missing_input_degrades_without_traceback(tmp_path: Path) -> None:
    isolated = tmp_path / "pdlgen.py"
    shutil.copy2(_tool_root() / "pdlgen.py", isolated)

    result = subprocess.run(
        [sys.executable, str(isolated), "--out-dir", "out", "absent.pdl"],
        cwd=tmp_path,
        capture_output=True,
        text=True,
        check=False,
    )

    combined_output = result.stdout + result.stderr
    assert result.returncode == 1
    assert "PATH_NOT_FOUND" in combined_output
    assert "absent.pdl" in combined_output
    assert "Traceback (most recent call last)" not in combined_output


def test_t_09_help_stable_surface_includes_public_flags() -> None:
    result = _run(["--help"])

    assert result.returncode == 0
    for flag in (
        "--out-dir",
        "--target-mod",
        "--no-experimental",
        "--deprecated",
        "--no-serde",
        "--serde-feature",
        "--types-crate",
        "--box-threshold",
        "--skip-fmt",
        "--list-domains",
        "--info",
        "--filter",
    ):
        assert flag in result.stdout
