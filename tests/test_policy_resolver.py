from textwrap import dedent

from data.diff_engine import DiffEngine
from data.marker_classifier import MarkerClassifier
from data.tokenizer import LineNormalizer
from domain.entities import Variant, Verdict
from domain.services.policy_resolver import PolicyResolver


def resolve(settings, old: str, new: str):
    normalizer = LineNormalizer(settings)
    source = normalizer.normalize(dedent(old), Variant.SOURCE)
    target = normalizer.normalize(dedent(new), Variant.TARGET)

    engine = DiffEngine()
    classifier = MarkerClassifier(settings)
    hunks = engine.group_hunks(engine.diff(source, target))
    directives = classifier.classify(source) + classifier.classify(target)
    for hunk in hunks:
        hunk.attach_directives(directives)

    resolver = PolicyResolver(settings)
    decisions = resolver.resolve(hunks)
    return resolver, {(d.variant, d.line_index): d for d in decisions}, decisions


def test_defaults_without_directives(settings):
    _, by_key, decisions = resolve(settings, "a();\nremove_me();\n", "a();\nx = 1;\nd();\n")

    assert by_key[(Variant.SOURCE, 0)].verdict == Verdict.KEEP
    assert by_key[(Variant.SOURCE, 0)].provenance == "anchor"
    # remove_me() -> x = 1 is not similar enough to be a rename
    assert by_key[(Variant.SOURCE, 1)].verdict == Verdict.REMOVE
    assert by_key[(Variant.TARGET, 1)].verdict == Verdict.KEEP
    assert by_key[(Variant.TARGET, 2)].provenance == "default:insert"
    assert len(decisions) == 5


def test_decisions_are_ordered_source_first(settings):
    _, _, decisions = resolve(settings, "x;\ny;\n", "y;\nz;\n")
    keys = [(d.variant, d.line_index) for d in decisions]
    assert keys == [
        (Variant.SOURCE, 0), (Variant.SOURCE, 1),
        (Variant.TARGET, 0), (Variant.TARGET, 1),
    ]


def test_must_stay_overrides_delete(settings):
    _, by_key, _ = resolve(
        settings,
        """\
        int a;
        // THIS ONE SHOULD STAY
        int gone;
        """,
        "int a;\n",
    )
    decision = by_key[(Variant.SOURCE, 2)]
    assert decision.verdict == Verdict.KEEP
    assert "must_stay" in decision.provenance
    assert "overrides default:delete" in decision.provenance


def test_must_stay_beats_must_filter(settings):
    resolver, by_key, _ = resolve(
        settings,
        """\
        int a;
        // SHOULD BE FILTERED
        // SHOULD STAY
        int gone;
        """,
        "int a;\n",
    )
    assert by_key[(Variant.SOURCE, 3)].verdict == Verdict.KEEP

    conflicts = resolver.get_last_conflicts()
    assert len(conflicts) == 1
    assert conflicts[0].line_index == 3
    assert conflicts[0].winner == "must_stay"


def test_must_filter_on_insert(settings):
    _, by_key, _ = resolve(
        settings,
        "int a;\n",
        """\
        int a;
        // THIS ONE SHOULD BE FILTERED
        debug();
        """,
    )
    assert by_key[(Variant.TARGET, 2)].verdict == Verdict.FILTERED
    assert by_key[(Variant.TARGET, 2)].provenance.startswith("directive:must_filter")


def test_may_remove_only_licenses_removal(settings):
    _, by_key, _ = resolve(
        settings,
        """\
        int a;
        // MIGHT BE REMOVED
        cleanup_everything();
        """,
        """\
        int a;
        // MIGHT BE REMOVED
        int added;
        extra();
        """,
    )
    # source side: the diff proposed a removal, the directive licenses it
    removed = by_key[(Variant.SOURCE, 2)]
    assert removed.verdict == Verdict.REMOVE
    assert "licensed by directive:may_remove" in removed.provenance

    # target side: the directive cannot force a removal of an insertion
    assert by_key[(Variant.TARGET, 3)].verdict == Verdict.KEEP


def test_blank_churn_is_filtered_unless_must_stay(settings):
    _, by_key, _ = resolve(
        settings,
        "int a;\nint b;\n",
        """\
        int a;
        //

        // STAY
        //
        int b;
        """,
    )
    assert by_key[(Variant.TARGET, 1)].verdict == Verdict.FILTERED
    assert by_key[(Variant.TARGET, 1)].provenance == "noise:blank"
    assert by_key[(Variant.TARGET, 2)].verdict == Verdict.FILTERED
    # "// STAY" is followed by a bare comment, so it only scopes itself
    assert by_key[(Variant.TARGET, 3)].verdict == Verdict.KEEP
    assert by_key[(Variant.TARGET, 4)].verdict == Verdict.FILTERED


def test_unchanged_lines_stay_kept_under_filter_directive(settings):
    content = "// FILTERED\nint a;\n"
    _, by_key, _ = resolve(settings, content, content)
    assert by_key[(Variant.SOURCE, 1)].verdict == Verdict.KEEP
    assert by_key[(Variant.TARGET, 1)].provenance == "anchor"


def test_rename_keeps_both_sides(settings):
    _, by_key, _ = resolve(settings, "  int result;\n", "  int res;\n")
    assert by_key[(Variant.SOURCE, 0)].verdict == Verdict.KEEP
    assert by_key[(Variant.SOURCE, 0)].provenance == "default:substitute(rename)"
    assert by_key[(Variant.TARGET, 0)].verdict == Verdict.KEEP


def test_move_keeps_both_sides(settings):
    _, by_key, _ = resolve(settings, "a();\nb();\nc();\n", "b();\nc();\na();\n")
    assert by_key[(Variant.SOURCE, 0)].provenance == "default:move"
    assert by_key[(Variant.TARGET, 2)].verdict == Verdict.KEEP


def test_anchor_distance_filters_far_insertions(make_settings):
    active = make_settings({"policy": {"anchor_distance": 1}})
    _, by_key, _ = resolve(active, "a();\n", "a();\nnear();\nfar();\n")

    assert by_key[(Variant.TARGET, 1)].verdict == Verdict.KEEP
    assert by_key[(Variant.TARGET, 2)].verdict == Verdict.FILTERED
    assert by_key[(Variant.TARGET, 2)].provenance == "anchor-distance>1"


def test_anchor_distance_never_filters_removals(make_settings):
    active = make_settings({"policy": {"anchor_distance": 0}})
    _, by_key, _ = resolve(active, "a();\nb();\nc();\n", "a();\n")
    assert by_key[(Variant.SOURCE, 2)].verdict == Verdict.REMOVE


def test_whitespace_only_substitution_is_filtered(settings):
    _, by_key, _ = resolve(settings, "int a;\n  int b;\nint  c;\n", "int a;\n    int b;\nint c;\n")

    for variant in Variant:
        for index in (1, 2):
            decision = by_key[(variant, index)]
            assert decision.verdict == Verdict.FILTERED
            assert decision.provenance == "noise:whitespace"


def test_must_stay_protects_whitespace_change(settings):
    _, by_key, _ = resolve(
        settings,
        "int a;\n// SHOULD STAY\n  int b;\n",
        "int a;\n// SHOULD STAY\n    int b;\n",
    )
    assert by_key[(Variant.SOURCE, 2)].verdict == Verdict.KEEP
    assert by_key[(Variant.TARGET, 2)].verdict == Verdict.KEEP
    assert by_key[(Variant.TARGET, 2)].provenance == "directive:must_stay@target:1"


def test_repeated_comment_next_to_unchanged_copy_is_filtered(settings):
    short, longer = "int a;\n// x\nint b;\n", "int a;\n// x\n// x\nint b;\n"

    _, by_key, _ = resolve(settings, short, longer)
    assert by_key[(Variant.TARGET, 2)].verdict == Verdict.FILTERED
    assert by_key[(Variant.TARGET, 2)].provenance == "noise:run-length"

    _, by_key, _ = resolve(settings, longer, short)
    assert by_key[(Variant.SOURCE, 2)].verdict == Verdict.FILTERED
    assert by_key[(Variant.SOURCE, 2)].provenance == "noise:run-length"


def test_new_comment_or_repeated_code_is_not_run_length_noise(settings):
    _, by_key, _ = resolve(settings, "int a;\n// x\nint b;\n", "int a;\n// x\n// y\nint b;\n")
    assert by_key[(Variant.TARGET, 2)].provenance == "default:insert"

    _, by_key, _ = resolve(settings, "a();\n", "a();\na();\n")
    assert by_key[(Variant.TARGET, 1)].verdict == Verdict.KEEP
