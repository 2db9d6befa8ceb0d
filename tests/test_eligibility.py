import logging

import pytest

from conjudrill.eligibility import (
    EligibilityFilter,
    exclude_previous,
    is_practicable,
    passes_integrity_checks,
    target_combos,
)
from conjudrill.models import (
    Form,
    MixedSettings,
    ReviewSettings,
    SpecificSettings,
)


def _form(lemma="hablar", mood="indicative", tense="pres", person="1s", value="x") -> Form:
    return Form(lemma=lemma, mood=mood, tense=tense, person=person, value=value)


@pytest.fixture
def eligibility(curriculum, verbs_by_lemma) -> EligibilityFilter:
    return EligibilityFilter(curriculum, verbs_by_lemma)


class TestGates:
    def test_level_inventory(self, eligibility, sample_forms):
        forms = eligibility.eligible(sample_forms, MixedSettings(level="A1"))
        assert forms
        assert {f.tense for f in forms} == {"pres", "ger", "part"}

    def test_dialect_gate(self, eligibility, sample_forms):
        forms = eligibility.eligible(sample_forms, MixedSettings(level="B1", region="la_general"))
        persons = {f.person for f in forms}
        assert "2s_vos" not in persons and "2p_vosotros" not in persons
        assert {"1s", "2s_tu", "3s", "1p", "3p", "nonfinite"} <= persons

    def test_rioplatense_uses_vos(self, eligibility, sample_forms):
        forms = eligibility.eligible(sample_forms, MixedSettings(region="rioplatense"))
        persons = {f.person for f in forms}
        assert "2s_vos" in persons and "2s_tu" not in persons

    def test_irregular_filter_is_per_tense(self, eligibility, sample_forms, verbs_by_lemma):
        forms = eligibility.eligible(sample_forms, MixedSettings(level="B1", verb_type="irregular"))
        assert forms
        assert all(verbs_by_lemma[f.lemma].is_irregular_in(f.tense) for f in forms)
        lemmas_by_tense = {(f.lemma, f.tense) for f in forms}
        assert ("tener", "pres") in lemmas_by_tense
        assert ("tener", "impf") not in lemmas_by_tense

    def test_regular_filter(self, eligibility, sample_forms):
        forms = eligibility.eligible(sample_forms, MixedSettings(level="B1", verb_type="regular"))
        lemmas = {f.lemma for f in forms}
        assert {"hablar", "comer", "vivir"} <= lemmas
        assert "ser" not in lemmas and "ir" not in lemmas
        # tener is regular in the imperfect
        assert ("tener", "impf") in {(f.lemma, f.tense) for f in forms}

    def test_unknown_verb_counts_as_regular(self, curriculum):
        eligibility = EligibilityFilter(curriculum, {})
        pool = (_form(lemma="cantar", value="canto"),)
        assert eligibility.eligible(pool, MixedSettings(verb_type="regular")) == pool
        assert eligibility.eligible(pool, MixedSettings(verb_type="irregular")) == ()

    def test_specific_mode_bypasses_level(self, eligibility, sample_forms):
        settings = SpecificSettings(level="A1", specific_mood="subjunctive", specific_tense="subjPres")
        forms = eligibility.eligible(sample_forms, settings)
        assert forms
        assert all(f.combo == ("subjunctive", "subjPres") for f in forms)

    def test_mixed_meta_tense(self, eligibility, sample_forms):
        settings = SpecificSettings(specific_mood="nonfinite", specific_tense="nonfiniteMixed")
        assert target_combos(settings) == {("nonfinite", "ger"), ("nonfinite", "part")}
        forms = eligibility.eligible(sample_forms, settings)
        assert {f.tense for f in forms} == {"ger", "part"}

    def test_review_filters(self, eligibility, sample_forms):
        forms = eligibility.eligible(sample_forms, ReviewSettings(review_tense="impf"))
        assert forms and all(f.tense == "impf" for f in forms)

    def test_unipersonal_verbs_from_b2(self, eligibility, sample_forms):
        b1 = eligibility.eligible(sample_forms, MixedSettings(level="B1"))
        assert ("llover", "1s") in {(f.lemma, f.person) for f in b1}

        b2 = eligibility.eligible(sample_forms, MixedSettings(level="B2"))
        llover_persons = {f.person for f in b2 if f.lemma == "llover"}
        assert llover_persons == {"3s", "3p", "nonfinite"}

    def test_allowed_lemmas(self, eligibility, sample_forms):
        settings = MixedSettings(allowed_lemmas=frozenset({"ser", "ir"}))
        forms = eligibility.eligible(sample_forms, settings)
        assert {f.lemma for f in forms} == {"ser", "ir"}

    def test_selected_family(self, eligibility, sample_forms):
        forms = eligibility.eligible(sample_forms, MixedSettings(selected_family="o_ue"))
        assert {f.lemma for f in forms} == {"llover"}


class TestPracticable:
    def test_infinitives_never_practised(self):
        assert not is_practicable(_form(mood="nonfinite", tense="inf", person="nonfinite"), MixedSettings())

    def test_future_subjunctive_needs_flag(self):
        form = _form(mood="subjunctive", tense="subjFut", value="hablare")
        assert not is_practicable(form, MixedSettings(level="C1"))
        assert is_practicable(form, MixedSettings(level="C1", enable_futuro_subj=True))

    def test_future_subjunctive_reaches_eligible_pool(self, eligibility):
        form = _form(mood="subjunctive", tense="subjFut", value="hablare")
        settings = MixedSettings(level="C1", enable_futuro_subj=True)
        assert eligibility.eligible((form,), settings) == (form,)
        assert eligibility.eligible((form,), MixedSettings(level="C1")) == ()


class TestExcludePrevious:
    def test_mixed_excludes_lemma_person_pair(self):
        forms = [_form(person="1s"), _form(tense="impf", person="1s"), _form(person="3s")]
        remaining = exclude_previous(forms, MixedSettings(), _form(person="1s"))
        assert [f.person for f in remaining] == ["3s"]

    def test_specific_excludes_whole_verb(self):
        settings = SpecificSettings(specific_mood="indicative", specific_tense="pres")
        forms = [_form(person="1s"), _form(person="3s"), _form(lemma="comer", person="1s")]
        remaining = exclude_previous(forms, settings, _form(person="3s"))
        assert [f.lemma for f in remaining] == ["comer"]

    def test_exclusion_skipped_when_it_would_empty(self):
        forms = [_form(person="1s")]
        assert exclude_previous(forms, MixedSettings(), _form(person="1s")) == forms

    def test_no_previous(self):
        forms = [_form()]
        assert exclude_previous(forms, MixedSettings(), None) == forms


class TestIntegrity:
    def test_rejects_disallowed_person(self, curriculum, caplog):
        form = _form(person="2s_vos", value="hablás")
        with caplog.at_level(logging.ERROR):
            ok = passes_integrity_checks(form, MixedSettings(region="la_general"), curriculum)
        assert not ok
        assert "Integrity guard rejected" in caplog.text

    def test_rejects_off_target_form(self, curriculum):
        settings = SpecificSettings(specific_mood="subjunctive", specific_tense="subjPres")
        assert not passes_integrity_checks(_form(), settings, curriculum)

    def test_accepts_legal_form(self, curriculum):
        assert passes_integrity_checks(_form(), MixedSettings(level="A1"), curriculum)


class TestCache:
    def test_repeated_call_hits_cache(self, eligibility, sample_forms):
        settings = MixedSettings(level="B1")
        first = eligibility.eligible(sample_forms, settings)
        second = eligibility.eligible(sample_forms, settings)
        assert first is second
        assert eligibility.stats() == {"cache_entries": 1, "cache_hits": 1, "cache_misses": 1}

    def test_equal_settings_share_entry(self, eligibility, sample_forms):
        eligibility.eligible(sample_forms, MixedSettings(level="B1"))
        eligibility.eligible(sample_forms, MixedSettings(level="B1"))
        assert eligibility.cache_size == 1

    def test_different_settings_miss(self, eligibility, sample_forms):
        eligibility.eligible(sample_forms, MixedSettings(level="B1"))
        eligibility.eligible(sample_forms, MixedSettings(level="A1"))
        assert eligibility.cache_misses == 2

    def test_cache_is_bounded(self, curriculum, sample_forms):
        eligibility = EligibilityFilter(curriculum, max_cache_entries=2)
        for level in ("A1", "A2", "B1"):
            eligibility.eligible(sample_forms, MixedSettings(level=level))
        assert eligibility.cache_size == 2

    def test_corrupted_entry_is_recomputed(self, eligibility, sample_forms, caplog):
        settings = MixedSettings(level="B1")
        expected = eligibility.eligible(sample_forms, settings)
        key = eligibility.cache_key(sample_forms, settings)
        eligibility._cache[key] = ["not", "forms"]

        with caplog.at_level(logging.WARNING):
            recomputed = eligibility.eligible(sample_forms, settings)

        assert recomputed == expected
        assert "Corrupted eligibility cache entry" in caplog.text
        assert eligibility.cache_misses == 2

    def test_clear_cache(self, eligibility, sample_forms):
        eligibility.eligible(sample_forms, MixedSettings())
        eligibility.clear_cache()
        assert eligibility.cache_size == 0

    def test_new_pool_content_misses_cache(self, eligibility):
        pool = [_form(lemma="hablar"), _form(lemma="hablar", person="3s")]
        first = eligibility.eligible(pool, MixedSettings(level="A1"))
        pool[:] = [_form(lemma="comer"), _form(lemma="comer", person="3s")]
        second = eligibility.eligible(pool, MixedSettings(level="A1"))
        assert {f.lemma for f in first} == {"hablar"}
        assert {f.lemma for f in second} == {"comer"}
        assert eligibility.cache_misses == 2

    def test_equal_pool_content_shares_entry(self, eligibility, sample_forms):
        eligibility.eligible(list(sample_forms), MixedSettings(level="B1"))
        eligibility.eligible(list(sample_forms), MixedSettings(level="B1"))
        assert eligibility.cache_hits == 1
