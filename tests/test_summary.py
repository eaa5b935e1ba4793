from __future__ import annotations

from pathlib import Path

import pdlgen


def _make_file_result(line_count: int = 1234, byte_count: int = 45678) -> pdlgen.FileWriteResult:
    return pdlgen.FileWriteResult(
        filename="cdp.rs",
        path=Path("/abs/out/cdp.rs"),
        line_count=line_count,
        byte_count=byte_count,
    )


def _make_generation_summary(
    *,
    boxed_events: int = 0,
    file: pdlgen.FileWriteResult | None = None,
) -> pdlgen.GenerationSummary:
    return pdlgen.GenerationSummary(
        target_label="mod cdp (with experimental, without deprecated, serde: always)",
        sources=("js_protocol.pdl 1.3", "browser_protocol.pdl 1.3"),
        output_file="/abs/out/cdp.rs",
        counts=pdlgen.GenerationCounts(
            domains=2, types=14, commands=6, events=5, boxed_events=boxed_events
        ),
        file=_make_file_result() if file is None else file,
    )


def test_t_01_build_target_label_reflects_filters_and_serde_mode() -> None:
    default = pdlgen.build_target_label(pdlgen.GeneratorOptions())
    custom = pdlgen.build_target_label(
        pdlgen.GeneratorOptions(
            with_experimental=False,
            with_deprecated=True,
            serde=pdlgen.SerdeSupport.with_feature("serde0"),
            target_mod="devtools",
        )
    )

    assert default == "mod cdp (with experimental, without deprecated, serde: always)"
    assert custom == (
        "mod devtools (without experimental, with deprecated, serde: feature serde0)"
    )


def test_t_02_build_generation_counts_applies_inclusion_filters(
    fixture_protocols: tuple[list[pdlgen.Protocol], list[str]],
) -> None:
    protocols, mods = fixture_protocols
    options = pdlgen.GeneratorOptions()
    output = pdlgen.generate_output(protocols, mods, options)

    counts = pdlgen.build_generation_counts(options, protocols, output.event_variants)

    assert counts == pdlgen.GenerationCounts(
        domains=4, types=13, commands=6, events=6, boxed_events=0
    )


def test_t_03_build_generation_counts_without_experimental(
    fixture_protocols: tuple[list[pdlgen.Protocol], list[str]],
) -> None:
    protocols, mods = fixture_protocols
    options = pdlgen.GeneratorOptions(with_experimental=False, box_threshold=100)
    output = pdlgen.generate_output(protocols, mods, options)

    counts = pdlgen.build_generation_counts(options, protocols, output.event_variants)

    assert counts.domains == 3
    assert counts.commands == 4
    assert counts.events == 5
    assert counts.boxed_events == 2


def test_t_04_format_generation_summary_emits_sections_in_order() -> None:
    output = pdlgen.format_generation_summary(_make_generation_summary())

    heading = output.index("Rust protocol types generated:")
    target = output.index("Target:")
    sources = output.index("Sources:")
    out_row = output.index("Output:")
    items = output.index("Items generated:")
    total = output.index("Total:")

    assert heading < target < sources < out_row < items < total
    assert "  Sources:    js_protocol.pdl 1.3, browser_protocol.pdl 1.3" in output
    assert output.endswith("\n")
    assert not output.endswith("\n\n")


def test_t_05_format_generation_summary_boxed_suffix_only_when_positive() -> None:
    plain = pdlgen.format_generation_summary(_make_generation_summary())
    boxed = pdlgen.format_generation_summary(_make_generation_summary(boxed_events=2))

    assert "    Events:          5\n" in plain
    assert "boxed" not in plain
    assert "    Events:          5  (2 boxed)\n" in boxed


def test_t_06_format_generation_summary_uses_thousands_separators() -> None:
    output = pdlgen.format_generation_summary(
        _make_generation_summary(file=_make_file_result(1234567, 9876543))
    )

    assert "  Total: 1,234,567 lines, 9,876,543 bytes" in output


def test_t_07_print_generation_summary_writes_formatted_text(capsys) -> None:
    summary = _make_generation_summary()

    pdlgen.print_generation_summary(summary)

    assert capsys.readouterr().out == pdlgen.format_generation_summary(summary)
