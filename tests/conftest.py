import random
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Sequence, Tuple

import pytest

from conjudrill.curriculum import CurriculumGraph
from conjudrill.models import Form, Verb
from conjudrill.selector import MultiTierSelector
from conjudrill.sources import InMemoryContentSource

PERSON_ORDER: Tuple[str, ...] = ("1s", "2s_tu", "2s_vos", "3s", "1p", "2p_vosotros", "3p")

# lemma -> (mood, tense) -> values in PERSON_ORDER
CONJUGATIONS: Dict[str, Dict[Tuple[str, str], Sequence[str]]] = {
    "hablar": {
        ("indicative", "pres"): ("hablo", "hablas", "hablás", "habla", "hablamos", "habláis", "hablan"),
        ("indicative", "pretIndef"): ("hablé", "hablaste", "hablaste", "habló", "hablamos", "hablasteis", "hablaron"),
        ("indicative", "impf"): ("hablaba", "hablabas", "hablabas", "hablaba", "hablábamos", "hablabais", "hablaban"),
        ("subjunctive", "subjPres"): ("hable", "hables", "hablés", "hable", "hablemos", "habléis", "hablen"),
    },
    "comer": {
        ("indicative", "pres"): ("como", "comes", "comés", "come", "comemos", "coméis", "comen"),
        ("indicative", "pretIndef"): ("comí", "comiste", "comiste", "comió", "comimos", "comisteis", "comieron"),
        ("indicative", "impf"): ("comía", "comías", "comías", "comía", "comíamos", "comíais", "comían"),
        ("subjunctive", "subjPres"): ("coma", "comas", "comás", "coma", "comamos", "comáis", "coman"),
    },
    "vivir": {
        ("indicative", "pres"): ("vivo", "vives", "vivís", "vive", "vivimos", "vivís", "viven"),
        ("indicative", "pretIndef"): ("viví", "viviste", "viviste", "vivió", "vivimos", "vivisteis", "vivieron"),
        ("indicative", "impf"): ("vivía", "vivías", "vivías", "vivía", "vivíamos", "vivíais", "vivían"),
        ("subjunctive", "subjPres"): ("viva", "vivas", "vivás", "viva", "vivamos", "viváis", "vivan"),
    },
    "ser": {
        ("indicative", "pres"): ("soy", "eres", "sos", "es", "somos", "sois", "son"),
        ("indicative", "pretIndef"): ("fui", "fuiste", "fuiste", "fue", "fuimos", "fuisteis", "fueron"),
        ("indicative", "impf"): ("era", "eras", "eras", "era", "éramos", "erais", "eran"),
        ("subjunctive", "subjPres"): ("sea", "seas", "seás", "sea", "seamos", "seáis", "sean"),
    },
    "tener": {
        ("indicative", "pres"): ("tengo", "tienes", "tenés", "tiene", "tenemos", "tenéis", "tienen"),
        ("indicative", "pretIndef"): ("tuve", "tuviste", "tuviste", "tuvo", "tuvimos", "tuvisteis", "tuvieron"),
        ("indicative", "impf"): ("tenía", "tenías", "tenías", "tenía", "teníamos", "teníais", "tenían"),
        ("subjunctive", "subjPres"): ("tenga", "tengas", "tengás", "tenga", "tengamos", "tengáis", "tengan"),
    },
    "ir": {
        ("indicative", "pres"): ("voy", "vas", "vas", "va", "vamos", "vais", "van"),
        ("indicative", "pretIndef"): ("fui", "fuiste", "fuiste", "fue", "fuimos", "fuisteis", "fueron"),
        ("indicative", "impf"): ("iba", "ibas", "ibas", "iba", "íbamos", "ibais", "iban"),
        ("subjunctive", "subjPres"): ("vaya", "vayas", "vayás", "vaya", "vayamos", "vayáis", "vayan"),
    },
    "llover": {
        ("indicative", "pres"): ("lluevo", "llueves", "llovés", "llueve", "llovemos", "llovéis", "llueven"),
    },
}

NONFINITE_FORMS: Dict[str, Dict[str, str]] = {
    "hablar": {"ger": "hablando", "part": "hablado"},
    "llover": {"ger": "lloviendo", "part": "llovido"},
}


def build_forms(lemma: str) -> List[Form]:
    """
    Build every Form of a sample verb.

    Parameters:
        lemma (str): A lemma present in CONJUGATIONS.

    Returns:
        List[Form]: Finite forms in PERSON_ORDER for each tense, followed by
        any nonfinite forms.
    """
    forms = [
        Form(lemma=lemma, mood=mood, tense=tense, person=person, value=value)
        for (mood, tense), values in CONJUGATIONS[lemma].items()
        for person, value in zip(PERSON_ORDER, values)
    ]
    for tense, value in NONFINITE_FORMS.get(lemma, {}).items():
        forms.append(
            Form(lemma=lemma, mood="nonfinite", tense=tense, person="nonfinite", value=value)
        )
    return forms


class FakeClock:
    """Clock that advances a fixed step every time it is read."""

    def __init__(self, start: datetime, step_seconds: float = 20.0):
        self.now = start
        self.step = timedelta(seconds=step_seconds)

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_clock(fixed_now: datetime) -> FakeClock:
    """Provides a clock starting at `fixed_now` and advancing 20 seconds per read."""
    return FakeClock(fixed_now)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def sample_verbs() -> List[Verb]:
    """
    Verb metadata for the sample pool.

    hablar, comer and vivir are regular. ser and ir are irregular everywhere.
    tener is irregular in the present, preterite and present subjunctive only.
    llover is an irregular unipersonal verb (stem change in the present).
    """
    return [
        Verb(lemma="hablar", type="regular"),
        Verb(lemma="comer", type="regular"),
        Verb(lemma="vivir", type="regular"),
        Verb(lemma="ser", type="irregular"),
        Verb(lemma="ir", type="irregular"),
        Verb(
            lemma="tener",
            type="irregular",
            irregular_tenses=["pres", "pretIndef", "subjPres"],
            families=["yo_g", "e_ie"],
        ),
        Verb(
            lemma="llover",
            type="irregular",
            irregular_tenses=["pres"],
            families=["o_ue"],
        ),
    ]


@pytest.fixture
def verbs_by_lemma(sample_verbs: List[Verb]) -> Dict[str, Verb]:
    return {verb.lemma: verb for verb in sample_verbs}


@pytest.fixture
def sample_forms() -> Tuple[Form, ...]:
    """Provides the full sample pool: seven verbs over four tenses plus nonfinite forms."""
    forms: List[Form] = []
    for lemma in CONJUGATIONS:
        forms.extend(build_forms(lemma))
    return tuple(forms)


@pytest.fixture
def curriculum() -> CurriculumGraph:
    return CurriculumGraph()


@pytest.fixture
def content_source(sample_forms, sample_verbs) -> InMemoryContentSource:
    return InMemoryContentSource(sample_forms, sample_verbs)


@pytest.fixture
def selector(content_source, curriculum, rng, fake_clock) -> MultiTierSelector:
    """
    Provides a MultiTierSelector over the sample pool with a seeded random
    source and an advancing fake clock, and no due, adaptive or mastery sources.
    """
    return MultiTierSelector(
        content_source=content_source,
        curriculum=curriculum,
        rng=rng,
        clock=fake_clock,
    )
