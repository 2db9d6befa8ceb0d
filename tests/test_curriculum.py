import pytest

from conjudrill.curriculum import (
    CurriculumEntry,
    CurriculumGraph,
    level_index,
    mastery_map,
)
from conjudrill.exceptions import InvalidConfigurationError
from conjudrill.models import MasteryRecord


class TestGraphConstruction:
    def test_cycle_is_rejected(self):
        entries = [
            CurriculumEntry(mood="indicative", tense="a", introduced_at="A1", prerequisites=("b",)),
            CurriculumEntry(mood="indicative", tense="b", introduced_at="A1", prerequisites=("a",)),
        ]
        with pytest.raises(InvalidConfigurationError, match="cycle"):
            CurriculumGraph(entries)

    def test_unknown_prerequisite_is_rejected(self):
        entries = [
            CurriculumEntry(mood="indicative", tense="a", introduced_at="A1", prerequisites=("zzz",)),
        ]
        with pytest.raises(InvalidConfigurationError, match="unknown prerequisite"):
            CurriculumGraph(entries)

    def test_duplicate_tense_is_rejected(self):
        entries = [
            CurriculumEntry(mood="indicative", tense="a", introduced_at="A1"),
            CurriculumEntry(mood="indicative", tense="a", introduced_at="A2"),
        ]
        with pytest.raises(InvalidConfigurationError, match="Duplicate"):
            CurriculumGraph(entries)

    def test_entry_level_is_validated(self):
        with pytest.raises(ValueError):
            CurriculumEntry(mood="indicative", tense="a", introduced_at="D1")


class TestLookups:
    def test_introduction_level(self, curriculum):
        assert curriculum.introduction_level("indicative", "pres") == "A1"
        assert curriculum.introduction_level("subjunctive", "subjImpf") == "B2"
        assert curriculum.introduction_level("subjunctive", "pres") is None

    def test_future_subjunctive_metadata(self, curriculum):
        assert curriculum.complexity("subjFut") == 9
        assert curriculum.family("subjFut") == "independent"
        assert curriculum.family("pretPerf") == "perfect_system"

    def test_unknown_tense_defaults(self, curriculum):
        assert curriculum.complexity("mystery") == 5
        assert curriculum.family("mystery") == "independent"
        assert curriculum.prerequisite_chain("mystery") == frozenset()

    def test_prerequisite_chain_is_transitive(self, curriculum):
        assert curriculum.prerequisite_chain("subjPlusc") == {
            "subjImpf",
            "plusc",
            "subjPres",
            "impf",
            "pres",
            "pretIndef",
            "pretPerf",
        }

    def test_similar_tenses(self, curriculum):
        assert curriculum.similar_tenses("pretIndef") == ("impf",)
        assert curriculum.similar_tenses("pres") == ()


class TestLevels:
    def test_level_index(self):
        assert level_index("A1") == 0
        assert level_index("ALL") == level_index("C2")
        with pytest.raises(InvalidConfigurationError, match="Unknown level"):
            level_index("Z9")

    def test_allowed_combos_are_cumulative(self, curriculum):
        a1 = curriculum.allowed_combos("A1")
        assert a1 == {
            ("indicative", "pres"),
            ("nonfinite", "part"),
            ("nonfinite", "ger"),
        }
        assert a1 < curriculum.allowed_combos("A2") < curriculum.allowed_combos("B1")

    def test_future_subjunctive_needs_flag(self, curriculum):
        assert ("subjunctive", "subjFut") not in curriculum.allowed_combos("C1")
        assert ("subjunctive", "subjFut") in curriculum.allowed_combos("C1", enable_futuro_subj=True)
        assert ("subjunctive", "subjFutPerf") in curriculum.allowed_combos("ALL", True)

    def test_tenses_introduced_at(self, curriculum):
        tenses = {e.tense for e in curriculum.tenses_introduced_at("B1")}
        assert tenses == {"plusc", "pretPerf", "futPerf", "subjPres", "subjPerf", "impNeg", "cond"}


class TestScoring:
    def test_readiness_without_prerequisites(self, curriculum):
        assert curriculum.readiness("pres") == 1.0

    def test_readiness_without_data(self, curriculum):
        assert curriculum.readiness("subjPres", {}) == 0.5

    def test_readiness_from_prerequisite_mastery(self, curriculum):
        assert curriculum.readiness("subjPres", {"pres": 75, "pretIndef": 90}) == 1.0
        assert curriculum.readiness("subjPres", {"pres": 30, "pretIndef": 45}) == pytest.approx(0.5)

    def test_learning_priority_favours_new_and_unmastered(self, curriculum):
        new_here = curriculum.learning_priority("subjPres", "B1")
        assert new_here - curriculum.learning_priority("subjPres", "B2") == pytest.approx(20)
        mastered = curriculum.learning_priority("subjPres", "B1", {"subjPres": 100})
        assert new_here - mastered == pytest.approx(20)

    def test_urgency_for_critical_tense(self, curriculum):
        assert curriculum.urgency("subjPres", "B1") == 80
        assert curriculum.urgency("cond", "B1") == 50

    @pytest.mark.parametrize(
        "score, stage",
        [(10, "introduction"), (45, "practice"), (70, "consolidation"), (85, "mastery")],
    )
    def test_learning_stage(self, score, stage):
        assert CurriculumGraph.learning_stage(score) == stage

    def test_mastery_map_averages_per_tense(self):
        records = [
            MasteryRecord(mood="indicative", tense="pres", verb_id="hablar", score=60),
            MasteryRecord(mood="indicative", tense="pres", verb_id="ser", score=80),
            MasteryRecord(mood="indicative", tense="impf", score=40),
        ]
        assert mastery_map(records) == {"pres": 70, "impf": 40}
        assert mastery_map(None) == {}


class TestBuckets:
    def test_core_contains_level_tenses(self, curriculum):
        core = curriculum.core("B1")
        assert {t.tense for t in core} == {
            "plusc", "pretPerf", "futPerf", "subjPres", "subjPerf", "impNeg", "cond"
        }
        assert all(t.category == "core" for t in core)

    def test_review_excludes_mastered_tenses(self, curriculum):
        review = curriculum.review("B1", {"pres": 90})
        tenses = [t.tense for t in review]
        assert "pres" not in tenses
        assert set(tenses) == {"part", "ger", "pretIndef", "impf", "fut", "impAff"}

    def test_review_puts_prerequisites_first(self, curriculum):
        review = curriculum.review("B1", {"pres": 90})
        assert {t.tense for t in review[:2]} == {"pretIndef", "impf"}
        assert all(t.is_prerequisite and t.label == "high" for t in review[:2])
        assert not any(t.is_prerequisite for t in review[2:])

    def test_exploration_previews_ready_next_level_tenses(self, curriculum):
        exploration = curriculum.exploration("B1")
        tenses = {t.tense for t in exploration}
        assert tenses == {"subjImpf", "condPerf"}
        # subjPlusc is too complex for a B1 learner without data
        assert "subjPlusc" not in tenses
        assert len(exploration) <= 3

    def test_no_exploration_at_top_level(self, curriculum):
        assert curriculum.exploration("C2") == []

    def test_prerequisite_gaps(self, curriculum):
        gaps = curriculum.prerequisite_gaps("B1", {"pres": 90, "impf": 50})
        assert {t.tense for t in gaps} == {"pretPerf", "impf", "pretIndef"}
        assert all(t.is_prerequisite for t in gaps)
        # largest gap first
        assert gaps[-1].tense == "impf"

    def test_family_group_status(self, curriculum):
        groups = {g.family: g for g in curriculum.family_groups("B1", {"pretIndef": 80, "impf": 80})}
        assert groups["past_narrative"].status == "completed"
        assert groups["past_narrative"].priority == 0

        groups = {g.family: g for g in curriculum.family_groups("B1", {"pretIndef": 80})}
        assert groups["past_narrative"].status == "in_progress"

    def test_family_groups_respect_level(self, curriculum):
        families = {g.family for g in curriculum.family_groups("A1")}
        assert families == {"basic_present", "nonfinite_basics"}

    def test_progression_path_is_bounded(self, curriculum):
        path = curriculum.progression_path("C2")
        assert 0 < len(path) <= 8
        assert all(t.readiness >= 0.7 for t in path)


class TestDynamicWeights:
    def test_base_weights_without_mastery(self, curriculum):
        weights = curriculum.dynamic_weights("B1")
        assert weights["core"] == 0.65
        assert weights["family_focus"] == 0.0

    def test_high_mastery_shifts_to_review(self, curriculum):
        mastery = {"pres": 90, "pretIndef": 90, "impf": 90}
        weights = curriculum.dynamic_weights("B1", mastery)
        assert weights["review"] == pytest.approx(0.35)
        assert weights["consolidation"] == pytest.approx(0.7)
        assert weights["core"] == pytest.approx(0.55)

    def test_low_mastery_shifts_to_core(self, curriculum):
        weights = curriculum.dynamic_weights("B1", {"pres": 10})
        assert weights["core"] == pytest.approx(0.75)
        assert weights["consolidation"] == pytest.approx(0.4)


class TestPlans:
    def test_plan_has_every_bucket(self, curriculum):
        plan = curriculum.plan("B1", {"pres": 40})
        assert plan.level == "B1"
        assert plan.core and plan.review and plan.exploration
        assert plan.family_groups
        assert set(plan.weights) >= {"core", "review", "exploration", "consolidation"}
        assert all(t.adjusted_priority > 0 for t in plan.core)

    def test_all_level_plans_as_top_level(self, curriculum):
        assert curriculum.plan("ALL").level == "C2"

    def test_struggling_core_tense_is_boosted(self, curriculum):
        plan = curriculum.plan("B1", {"subjPres": 20})
        subj = next(t for t in plan.core if t.tense == "subjPres")
        assert subj.reason == "struggling_area"
        assert subj.adjusted_priority >= subj.priority * 1.8

    def test_tense_weights_are_normalized(self, curriculum):
        weights = curriculum.tense_weights(curriculum.plan("B1"))
        assert max(weights.values()) == pytest.approx(1.0)
        assert all(0 < w <= 1 for w in weights.values())
        assert ("subjunctive", "subjPres") in weights

    def test_unlisted_combo_weight(self):
        assert CurriculumGraph.weight_for({}, ("indicative", "pres")) == 0.05

    def test_next_recommended_prefers_core(self, curriculum):
        recommended = curriculum.next_recommended("A1")
        assert recommended is not None
        assert recommended.category == "core"
        assert recommended.combo in curriculum.allowed_combos("A1")
