from __future__ import annotations

from pathlib import Path

import pytest

import pdlgen


def _make_domain_summary(
    *,
    name: str = "Page",
    module: str = "bp",
    type_count: int = 4,
    command_count: int = 2,
    event_count: int = 2,
    experimental: bool = False,
    deprecated: bool = False,
    depends: tuple[str, ...] = (),
) -> pdlgen.DomainSummary:
    return pdlgen.DomainSummary(
        name=name,
        module=module,
        version=pdlgen.ProtocolVersion(1, 3),
        type_count=type_count,
        command_count=command_count,
        event_count=event_count,
        experimental=experimental,
        deprecated=deprecated,
        depends=depends,
    )


def _discovery_config(
    existing_paths: dict[str, Path],
    command: str,
    *,
    filter_text: str | None = None,
    info_domain: str | None = None,
) -> pdlgen.DiscoveryConfig:
    return pdlgen.DiscoveryConfig(
        command=command,
        inputs=(existing_paths["js_pdl"], existing_paths["browser_pdl"]),
        filter_text=filter_text,
        info_domain=info_domain,
    )


def test_t_01_gather_domain_summaries_keeps_document_order(
    fixture_protocols: tuple[list[pdlgen.Protocol], list[str]],
) -> None:
    protocols, mods = fixture_protocols

    summaries = pdlgen.gather_domain_summaries(protocols, mods)

    assert [(s.name, s.module) for s in summaries] == [
        ("Runtime", "js_protocol"),
        ("Debugger", "js_protocol"),
        ("Browser", "browser_protocol"),
        ("Page", "browser_protocol"),
    ]
    page = summaries[3]
    assert (page.type_count, page.command_count, page.event_count) == (4, 2, 2)
    assert page.depends == ("Runtime", "Debugger")
    assert summaries[2].experimental is True


def test_t_02_filter_domains_by_text_is_case_insensitive_substring() -> None:
    summaries = [
        _make_domain_summary(name="Page"),
        _make_domain_summary(name="DOMDebugger"),
        _make_domain_summary(name="Debugger"),
    ]

    filtered = pdlgen.filter_domains_by_text(summaries, "debug")

    assert [s.name for s in filtered] == ["DOMDebugger", "Debugger"]


def test_t_03_format_domains_table_renders_aligned_rows_with_flags() -> None:
    output = pdlgen.format_domains_table(
        [_make_domain_summary(experimental=True)]
    )

    assert output.splitlines() == [
        "1 domains:",
        "",
        "  Page  bp  1.3   4 types   2 cmds   2 events  experimental",
    ]
    assert output.endswith("\n")


def test_t_04_format_domains_table_pads_names_to_widest() -> None:
    output = pdlgen.format_domains_table(
        [
            _make_domain_summary(name="IO", module="browser_protocol"),
            _make_domain_summary(name="Accessibility", module="bp"),
        ]
    )
    rows = output.splitlines()[2:]

    assert rows[0].startswith("  IO             browser_protocol  1.3")
    assert rows[1].startswith("  Accessibility  bp                1.3")


def test_t_05_format_domains_table_empty_list() -> None:
    assert pdlgen.format_domains_table([]).splitlines()[0] == "0 domains:"


def test_t_06_gather_domain_detail_categorizes_types(
    fixture_protocols: tuple[list[pdlgen.Protocol], list[str]],
) -> None:
    protocols, mods = fixture_protocols

    detail = pdlgen.gather_domain_detail(protocols, mods, "Page")

    assert detail is not None
    assert detail.types == (
        pdlgen.TypeEntry("FrameId", "alias"),
        pdlgen.TypeEntry("Frame", "struct"),
        pdlgen.TypeEntry("TransitionType", "enum"),
        pdlgen.TypeEntry("FrameTree", "struct"),
    )
    assert detail.commands == ("navigate", "clearDeviceOrientationOverride")
    assert detail.events == ("frameNavigated", "javascriptDialogOpening")
    assert pdlgen.gather_domain_detail(protocols, mods, "Nope") is None


def test_t_07_format_domain_detail_sections(
    fixture_protocols: tuple[list[pdlgen.Protocol], list[str]],
) -> None:
    protocols, mods = fixture_protocols
    detail = pdlgen.gather_domain_detail(protocols, mods, "Page")

    output = pdlgen.format_domain_detail(detail)
    lines = output.splitlines()

    assert lines[0] == "Page (browser_protocol 1.3)"
    assert lines[1] == "  Depends:  Runtime, Debugger"
    assert "  Types (4):" in lines
    assert "    TransitionType  enum" in lines
    assert "  Commands (2):" in lines
    assert "    navigate" in lines
    assert "  Events (2):" in lines
    assert lines.index("  Types (4):") < lines.index("  Commands (2):") < lines.index("  Events (2):")


def test_t_08_format_domain_detail_shows_flags(
    fixture_protocols: tuple[list[pdlgen.Protocol], list[str]],
) -> None:
    protocols, mods = fixture_protocols
    detail = pdlgen.gather_domain_detail(protocols, mods, "Browser")

    output = pdlgen.format_domain_detail(detail)

    assert output.splitlines()[0] == "Browser (browser_protocol 1.3, experimental)"
    assert "Depends:" not in output


def test_t_09_run_discovery_list_domains_with_filter(
    existing_paths: dict[str, Path],
    capsys: pytest.CaptureFixture[str],
) -> None:
    pdlgen.run_discovery(_discovery_config(existing_paths, "list-domains", filter_text="ug"))

    out = capsys.readouterr().out
    assert out.startswith("1 domains:")
    assert "Debugger" in out
    assert "Page" not in out


def test_t_10_run_discovery_info_unknown_domain_exits_1(
    existing_paths: dict[str, Path],
    capsys: pytest.CaptureFixture[str],
) -> None:
    with pytest.raises(SystemExit) as exc_info:
        pdlgen.run_discovery(_discovery_config(existing_paths, "info", info_domain="Nope"))

    assert exc_info.value.code == 1
    assert "domain 'Nope' not found" in capsys.readouterr().err


def test_t_11_run_discovery_rejects_unknown_command(existing_paths: dict[str, Path]) -> None:
    with pytest.raises(ValueError, match="Unknown discovery command"):
        pdlgen.run_discovery(_discovery_config(existing_paths, "list-versions"))


def test_t_12_main_reports_parse_errors_in_discovery(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    broken = tmp_path / "broken.pdl"
    broken.write_text("version\n  major 1\n  minor 3\n  junk\n", encoding="utf-8")

    with pytest.raises(SystemExit) as exc_info:
        pdlgen.main(["--list-domains", str(broken)])

    assert exc_info.value.code == 1
    assert capsys.readouterr().out.startswith(f"Error: {broken}:4:")
