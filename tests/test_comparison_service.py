from pathlib import Path

import pytest

from core.errors import ComparisonTimeoutError, MalformedInputError
from core.file_manager import FileManagerError
from data.tokenizer import LineNormalizer
from domain.entities import EditKind, Variant, Verdict
from domain.services.comparison_service import ComparisonService


FILTER_SOURCE = "filter/source_variant/version-1/main.c"
FILTER_TARGET = "filter/target_variant/version-0/main.c"
MIXED_V0 = "target_variant/version-0/mixed.c"
MIXED_V1 = "target_variant/version-1/mixed.c"


def verdict_of(report, variant, index):
    return report.decision_for(variant, index).verdict


def test_every_line_gets_exactly_one_decision(settings, samples_dir):
    service = ComparisonService(settings)
    report = service.compare_files(str(samples_dir / FILTER_SOURCE), str(samples_dir / FILTER_TARGET))

    keys = [d.key for d in report.decisions]
    assert len(keys) == len(set(keys))
    assert len(keys) == 32 + 27


def test_directives_drive_removed_function(settings, samples_dir):
    """Function signature pinned by SHOULD STAY, base case filtered."""
    service = ComparisonService(settings)
    report = service.compare_files(str(samples_dir / FILTER_SOURCE), str(samples_dir / FILTER_TARGET))

    signature = report.decision_for(Variant.SOURCE, 24)
    assert signature.text == "unsigned long long factorial(int n) {"
    assert signature.verdict == Verdict.KEEP
    assert "overrides default:delete" in signature.provenance

    base_case = report.decision_for(Variant.SOURCE, 27)
    assert base_case.text.strip().startswith("return 1;")
    assert base_case.verdict == Verdict.FILTERED

    # SHOULD STAY and MIGHT BE REMOVED both scope the signature
    assert any(c.line_index == 24 and c.winner == "must_stay" for c in report.conflicts)


def test_ifdef_block_only_in_target_is_kept(settings, samples_dir):
    service = ComparisonService(settings)
    report = service.compare_files(str(samples_dir / FILTER_SOURCE), str(samples_dir / FILTER_TARGET))

    for index in (12, 13, 14):
        decision = report.decision_for(Variant.TARGET, index)
        assert decision.verdict == Verdict.KEEP
        assert decision.provenance == "default:insert"

    # surrounding blank lines are churn
    assert verdict_of(report, Variant.TARGET, 11) == Verdict.FILTERED
    assert verdict_of(report, Variant.TARGET, 15) == Verdict.FILTERED

    inserted_span = {op.target_index for op in report.ops if op.kind == EditKind.INSERT}
    assert {11, 12, 13, 14, 15}.issubset(inserted_span)
    for op in report.ops:
        if op.target_index in (12, 13, 14):
            assert op.source_line is None


def test_rename_only_pair(settings, samples_dir):
    service = ComparisonService(settings)
    report = service.compare_files(str(samples_dir / MIXED_V0), str(samples_dir / MIXED_V1))

    changed = [op for op in report.ops if op.is_change]
    assert [op.kind for op in changed] == [EditKind.SUBSTITUTE] * 3
    for op in changed:
        assert "result" in op.source_line.raw_text
        assert "res" in op.target_line.raw_text
        assert verdict_of(report, Variant.SOURCE, op.source_index) == Verdict.KEEP
        assert verdict_of(report, Variant.TARGET, op.target_index) == Verdict.KEEP

    assert report.count(Verdict.REMOVE) == 0
    assert report.count(Verdict.FILTERED) == 0


def test_blank_comment_churn_is_filtered(settings, samples_dir):
    target_text = (samples_dir / MIXED_V0).read_text(encoding="utf-8")
    source_text = "".join(
        line for line in target_text.splitlines(keepends=True) if line.strip() != "//"
    )
    report = ComparisonService(settings).compare_texts(source_text, target_text)

    filtered = [d for d in report.decisions if d.verdict == Verdict.FILTERED]
    assert len(filtered) == 9
    assert all(d.variant == Variant.TARGET and d.text.strip() == "//" for d in filtered)
    assert all(
        d.verdict == Verdict.KEEP for d in report.decisions if d.text.strip() != "//"
    )


def test_file_present_on_one_side_only(settings, samples_dir):
    path = str(samples_dir / "edge_cases/target_variant/version-0/removed_file.c")
    report = ComparisonService(settings).compare_files(None, path)

    assert report.source_path == "<source>"
    assert all(d.variant == Variant.TARGET for d in report.decisions)
    assert all(op.kind == EditKind.INSERT for op in report.ops)


def test_malformed_input_aborts_before_diff(settings, tmp_path, samples_dir):
    broken = tmp_path / "broken.c"
    broken.write_text("int main() {\n/* never closed\n}\n", encoding="utf-8")

    with pytest.raises(MalformedInputError) as exc:
        ComparisonService(settings).compare_files(str(broken), str(samples_dir / FILTER_TARGET))
    assert exc.value.path == str(broken)


def test_missing_file(settings, tmp_path):
    with pytest.raises(FileManagerError):
        ComparisonService(settings).compare_files(str(tmp_path / "nope.c"), str(tmp_path / "nope2.c"))


def test_timeout_abandons_comparison(settings):
    text = "\n".join(f"line {i};" for i in range(200))
    with pytest.raises(ComparisonTimeoutError) as exc:
        ComparisonService(settings).compare_texts(text, text[::-1], timeout_ms=0)
    assert exc.value.timeout_ms == 0
    assert isinstance(exc.value, TimeoutError)


def test_compare_many_runs_pairs_independently(settings, samples_dir, tmp_path):
    broken = tmp_path / "broken.c"
    broken.write_text("/* open\n", encoding="utf-8")
    pairs = [
        (str(samples_dir / FILTER_SOURCE), str(samples_dir / FILTER_TARGET)),
        (str(broken), str(samples_dir / MIXED_V0)),
        (str(samples_dir / MIXED_V0), str(samples_dir / MIXED_V1)),
    ]
    completed, failed = [], []
    service = ComparisonService(settings)
    service.on_comparison_completed = completed.append
    service.on_comparison_failed = failed.append

    outcomes = service.compare_many(pairs, workers=3)

    assert [o.ok for o in outcomes] == [True, False, True]
    assert isinstance(outcomes[1].error, MalformedInputError)
    assert outcomes[0].report.source_path == pairs[0][0]
    assert len(completed) == 2
    assert len(failed) == 1


def test_compare_directories_pairs_by_relative_path(settings, samples_dir):
    outcomes = ComparisonService(settings).compare_directories(
        str(samples_dir / "source_variant"),
        str(samples_dir / "target_variant"),
        pattern="*.c",
    )
    names = sorted(
        Path(o.source_path or o.target_path).relative_to(
            samples_dir / ("source_variant" if o.source_path else "target_variant")
        ).as_posix()
        for o in outcomes
    )
    assert names == [
        "version-0/mixed.c",
        "version-1/additive.c",
        "version-1/anchor_below.c",
        "version-1/mixed.c",
    ]
    assert all(o.ok for o in outcomes)

    only_source = [o for o in outcomes if o.target_path is None]
    assert len(only_source) == 1
    assert all(
        d.verdict == Verdict.REMOVE or d.verdict == Verdict.FILTERED
        for d in only_source[0].report.decisions
    )


def test_compare_snapshots_reuses_loaded_variants(settings):
    normalizer = LineNormalizer(settings)
    source = normalizer.normalize("int a;\nint b;\n", Variant.SOURCE, path="a.c")
    target = normalizer.normalize("int a;\nint c;\n", Variant.TARGET, path="b.c")

    report = ComparisonService(settings).compare_snapshots(source, target)

    assert report.source_path == "a.c"
    assert [op.kind for op in report.ops] == [EditKind.EQUAL, EditKind.SUBSTITUTE]
    assert verdict_of(report, Variant.TARGET, 1) == Verdict.KEEP


def test_indentation_change_is_churn(settings):
    report = ComparisonService(settings).compare_texts("int a;\n  int b;\n", "int a;\n    int b;\n")

    assert verdict_of(report, Variant.TARGET, 1) == Verdict.FILTERED
    assert report.decision_for(Variant.TARGET, 1).provenance == "noise:whitespace"
    assert report.count(Verdict.KEEP) == 2
