"""
Static curriculum and variety constants.

This module contains the pedagogical tables (levels, tense introduction,
complexity, families, prerequisites), the person inventory with its regional
gates, and the default weights used by the variety engine.
No runtime configuration - pure constants only.
"""
from typing import Dict, FrozenSet, Tuple

# CEFR proficiency tiers, lowest first. "ALL" is accepted by settings but is
# not part of the ordering.
LEVELS: Tuple[str, ...] = ("A1", "A2", "B1", "B2", "C1", "C2")
ALL_LEVELS = "ALL"

# Grammatical persons. "nonfinite" is the sentinel for gerunds/participles.
PERSONS: Tuple[str, ...] = (
    "1s",
    "2s_tu",
    "2s_vos",
    "3s",
    "1p",
    "2p_vosotros",
    "3p",
)
NONFINITE_PERSON = "nonfinite"

REGION_EXCLUDED_PERSONS: Dict[str, FrozenSet[str]] = {
    "rioplatense": frozenset({"2s_tu", "2p_vosotros"}),
    "la_general": frozenset({"2s_vos", "2p_vosotros"}),
    "peninsular": frozenset({"2s_vos"}),
    "none": frozenset(),
}

# Tenses never offered as practice items.
EXCLUDED_TENSES: FrozenSet[str] = frozenset({"inf", "infPerf"})

# Archaic future subjunctive, only offered when explicitly enabled.
FUTURE_SUBJUNCTIVE_TENSES: FrozenSet[str] = frozenset({"subjFut", "subjFutPerf"})

# Weather verbs conjugated only in the third person.
UNIPERSONAL_VERBS: FrozenSet[str] = frozenset(
    {"llover", "nevar", "granizar", "amanecer"}
)
UNIPERSONAL_PERSONS: FrozenSet[str] = frozenset({"3s", "3p"})
UNIPERSONAL_MIN_LEVEL = "B2"

# Meta-tenses that union two underlying (mood, tense) pairs in specific practice.
MIXED_COMBINATIONS: Dict[Tuple[str, str], Tuple[Tuple[str, str], ...]] = {
    ("imperative", "impMixed"): (("imperative", "impAff"), ("imperative", "impNeg")),
    ("nonfinite", "nonfiniteMixed"): (("nonfinite", "ger"), ("nonfinite", "part")),
}

# (mood, tense) -> level at which it is first introduced.
INTRODUCTION_LEVELS: Dict[Tuple[str, str], str] = {
    ("indicative", "pres"): "A1",
    ("nonfinite", "part"): "A1",
    ("nonfinite", "ger"): "A1",
    ("indicative", "pretIndef"): "A2",
    ("indicative", "impf"): "A2",
    ("indicative", "fut"): "A2",
    ("imperative", "impAff"): "A2",
    ("indicative", "plusc"): "B1",
    ("indicative", "pretPerf"): "B1",
    ("indicative", "futPerf"): "B1",
    ("subjunctive", "subjPres"): "B1",
    ("subjunctive", "subjPerf"): "B1",
    ("imperative", "impNeg"): "B1",
    ("conditional", "cond"): "B1",
    ("subjunctive", "subjImpf"): "B2",
    ("subjunctive", "subjPlusc"): "B2",
    ("conditional", "condPerf"): "B2",
    ("subjunctive", "subjFut"): "C1",
    ("subjunctive", "subjFutPerf"): "C1",
}

COMPLEXITY_SCORES: Dict[str, int] = {
    "pres": 1,
    "ger": 2,
    "part": 2,
    "pretIndef": 3,
    "impf": 3,
    "fut": 3,
    "impAff": 4,
    "pretPerf": 5,
    "cond": 5,
    "plusc": 6,
    "futPerf": 6,
    "subjPres": 7,
    "subjPerf": 7,
    "impNeg": 7,
    "subjImpf": 8,
    "condPerf": 8,
    "subjPlusc": 9,
    "subjFut": 9,
    "subjFutPerf": 9,
}
DEFAULT_COMPLEXITY = 5

TENSE_FAMILIES: Dict[str, Tuple[str, ...]] = {
    "basic_present": ("pres",),
    "nonfinite_basics": ("ger", "part"),
    "past_narrative": ("pretIndef", "impf"),
    "future_planning": ("fut",),
    "command_forms": ("impAff", "impNeg"),
    "perfect_system": ("pretPerf", "plusc", "futPerf"),
    "subjunctive_present": ("subjPres", "subjPerf"),
    "subjunctive_past": ("subjImpf", "subjPlusc"),
    "conditional_system": ("cond", "condPerf"),
}
INDEPENDENT_FAMILY = "independent"

# Order in which families are worked through on the progression path.
FAMILY_PROGRESSION_ORDER: Tuple[str, ...] = (
    "basic_present",
    "nonfinite_basics",
    "past_narrative",
    "perfect_system",
    "subjunctive_present",
    "conditional_system",
    "command_forms",
    "subjunctive_past",
)

PREREQUISITES: Dict[str, Tuple[str, ...]] = {
    "subjPres": ("pres", "pretIndef"),
    "subjImpf": ("subjPres", "impf"),
    "pretPerf": ("pres",),
    "plusc": ("pretPerf", "impf"),
    "condPerf": ("cond", "pretPerf"),
    "subjPlusc": ("subjImpf", "plusc"),
}

SIMILAR_TENSES: Dict[str, Tuple[str, ...]] = {
    "pretIndef": ("impf",),
    "impf": ("pretIndef",),
    "subjPres": ("subjImpf",),
    "subjImpf": ("subjPres",),
    "pretPerf": ("plusc",),
    "plusc": ("pretPerf",),
    "fut": ("cond",),
    "cond": ("fut",),
}

DEFAULT_TENSE_BY_MOOD: Dict[str, str] = {
    "indicative": "pres",
    "subjunctive": "subjPres",
    "imperative": "impAff",
    "conditional": "cond",
    "nonfinite": "ger",
}

LEVEL_CRITICAL_TENSES: Dict[str, Tuple[str, ...]] = {
    "A2": ("pretIndef", "impf"),
    "B1": ("subjPres", "pretPerf"),
    "B2": ("subjImpf",),
}

# Highest complexity comfortably handled at each level.
LEVEL_COMPLEXITY_MAX: Dict[str, int] = {
    "A1": 3,
    "A2": 4,
    "B1": 7,
    "B2": 8,
    "C1": 9,
    "C2": 9,
}

# Bonus added to the learning priority of a tense by its family.
FAMILY_PRIORITY_BONUS: Dict[str, int] = {
    "subjunctive_present": 25,
    "perfect_system": 20,
    "past_narrative": 15,
    "subjunctive_past": 30,
    "conditional_system": 15,
}
FAMILY_REVIEW_BONUS: Dict[str, int] = {
    "perfect_system": 10,
    "subjunctive_present": 15,
    "past_narrative": 12,
}

# Per-level fractions of practice devoted to each curriculum bucket.
LEVEL_PRIORITY_WEIGHTS: Dict[str, Dict[str, float]] = {
    "A1": {"core": 0.90, "review": 0.10, "exploration": 0.0, "consolidation": 0.8},
    "A2": {"core": 0.75, "review": 0.20, "exploration": 0.05, "consolidation": 0.6},
    "B1": {"core": 0.65, "review": 0.25, "exploration": 0.10, "consolidation": 0.5},
    "B2": {"core": 0.50, "review": 0.35, "exploration": 0.15, "consolidation": 0.4},
    "C1": {"core": 0.35, "review": 0.45, "exploration": 0.20, "consolidation": 0.3},
    "C2": {"core": 0.25, "review": 0.55, "exploration": 0.20, "consolidation": 0.2},
}

# Mastery thresholds (score out of 100).
MASTERED_THRESHOLD = 75
REVIEW_MASTERY_CEILING = 80
PREREQUISITE_GAP_THRESHOLD = 70
LEARNING_STAGE_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (30, "introduction"),
    (60, "practice"),
    (80, "consolidation"),
)
MASTERED_STAGE = "mastery"

# Multiplicities used when expanding a level plan into tense weights.
WEIGHTED_SELECTION_MULTIPLIERS: Dict[str, int] = {
    "prerequisite_gap": 6,
    "family_completion": 4,
    "core_ready": 3,
    "progression": 3,
    "review": 2,
    "core_not_ready": 1,
    "exploration": 1,
}
UNLISTED_TENSE_WEIGHT = 0.05

# --- Variety engine defaults ---

VERB_RECENCY_WINDOW_SECONDS = 120.0
VERB_RECENCY_MAX_PENALTY = 0.9
TENSE_PENALTY_PER_USE = 0.2
TENSE_PENALTY_CAP = 0.6
PERSON_PENALTY_PER_USE = 0.1
PERSON_PENALTY_CAP = 0.2
COMBO_WINDOW_SECONDS = 180.0
COMBO_PENALTY = 0.95
CATEGORY_PENALTY_PER_USE = 0.1
CATEGORY_PENALTY_CAP = 0.3

TYPE_RING_SIZE = 40
IRREGULAR_TARGET_RATIO = 0.65
IRREGULAR_RATIO_TOLERANCE = 0.08
IRREGULAR_BOOST = 0.35
REGULAR_BOOST = 0.15

TOP_CANDIDATE_FRACTION = 0.4

TENSE_MEMORY_SIZE = 6
PERSON_MEMORY_SIZE = 5
CATEGORY_MEMORY_SIZE = 4
VERB_MEMORY_SIZE = 50

# Multi-factor weight profiles for mixed practice.
BASE_FACTOR_WEIGHTS: Dict[str, float] = {
    "accuracy": 0.25,
    "level_fit": 0.15,
    "difficulty_match": 0.10,
    "variety": 0.20,
    "verb_priority": 0.15,
    "tense_family_balance": 0.10,
    "semantic_diversity": 0.05,
}
LEVEL_FACTOR_OVERRIDES: Dict[str, Dict[str, float]] = {
    "A1": {"verb_priority": 0.25, "variety": 0.15, "level_fit": 0.20},
    "A2": {"tense_family_balance": 0.15, "difficulty_match": 0.15},
    "B1": {"accuracy": 0.20, "variety": 0.25, "tense_family_balance": 0.15},
    "B2": {"variety": 0.25, "semantic_diversity": 0.10},
    "C1": {"variety": 0.30, "semantic_diversity": 0.15, "accuracy": 0.15},
    "C2": {"variety": 0.30, "semantic_diversity": 0.15, "accuracy": 0.15},
}

# Expected difficulty baseline per level, on the complexity scale.
LEVEL_DIFFICULTY_BASE: Dict[str, float] = {
    "A1": 1.5,
    "A2": 3.0,
    "B1": 5.0,
    "B2": 7.0,
    "C1": 8.0,
    "C2": 9.0,
}
MAX_SESSION_DIFFICULTY = 5
SELECTIONS_PER_DIFFICULTY_STEP = 10

VERB_PRIORITY_SCORES: Dict[str, float] = {
    "essential": 1.0,
    "important": 0.7,
    "supplementary": 0.4,
}
UNLISTED_VERB_PRIORITY = 0.2

LEVEL_VERB_PRIORITIES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "A1": {
        "essential": ("ser", "estar", "tener", "hacer", "ir", "hablar", "comer", "vivir", "dar", "ver"),
        "important": ("querer", "poder", "venir", "decir", "llamar", "trabajar", "estudiar", "gustar"),
        "supplementary": ("salir", "entrar", "llegar", "beber", "dormir", "jugar"),
    },
    "A2": {
        "essential": ("ser", "estar", "tener", "hacer", "ir", "poder", "querer", "decir", "ver", "dar"),
        "important": ("venir", "salir", "llegar", "poner", "saber", "conocer", "pensar", "encontrar"),
        "supplementary": ("seguir", "llevar", "traer", "pasar", "quedar", "contar", "preguntar"),
    },
    "B1": {
        "essential": ("ser", "estar", "haber", "tener", "hacer", "poder", "decir", "ir", "ver", "dar"),
        "important": ("querer", "venir", "poner", "saber", "conocer", "seguir", "parecer", "sentir"),
        "supplementary": ("creer", "recordar", "olvidar", "preocupar", "intentar", "conseguir", "permitir"),
    },
    "B2": {
        "essential": ("ser", "estar", "haber", "hacer", "poder", "deber", "querer", "parecer", "resultar"),
        "important": ("conseguir", "lograr", "intentar", "evitar", "sugerir", "proponer", "convencer"),
        "supplementary": ("manifestar", "expresar", "comunicar", "transmitir", "plantear", "resolver"),
    },
    "C1": {
        "essential": ("ser", "estar", "resultar", "suponer", "implicar", "conllevar", "plantear"),
        "important": ("manifestar", "evidenciar", "demostrar", "constatar", "corroborar", "refutar"),
        "supplementary": ("concernir", "atañer", "incumbir", "suscitar", "desencadenar", "propiciar"),
    },
    "C2": {
        "essential": ("ser", "estar", "resultar", "constituir", "representar", "significar"),
        "important": ("concernir", "atañer", "incumbir", "suscitar", "desencadenar", "propiciar"),
        "supplementary": ("yacer", "asir", "raer", "roer", "abolir", "balbucir", "garantir"),
    },
}

VERB_SEMANTIC_CATEGORIES: Dict[str, Tuple[str, ...]] = {
    "basic_actions": ("ser", "estar", "tener", "hacer", "ir", "venir", "dar", "ver", "hablar", "comer", "vivir"),
    "movement": ("ir", "venir", "llegar", "salir", "entrar", "subir", "bajar", "correr", "caminar", "viajar", "volver"),
    "communication": ("hablar", "decir", "contar", "preguntar", "responder", "explicar", "gritar", "llamar", "escuchar"),
    "emotions": ("amar", "querer", "odiar", "gustar", "sentir", "emocionar", "alegrar", "entristecer", "preocupar"),
    "mental": ("pensar", "creer", "saber", "conocer", "recordar", "olvidar", "entender", "comprender", "estudiar"),
    "physical": ("comer", "beber", "dormir", "trabajar", "jugar", "cortar", "construir", "limpiar", "cocinar"),
    "states": ("estar", "ser", "parecer", "resultar", "quedar", "permanecer", "continuar", "seguir"),
    "possession": ("tener", "dar", "recibir", "comprar", "vender", "prestar", "devolver", "conseguir"),
    "irregular_common": ("ser", "estar", "tener", "hacer", "ir", "poder", "querer", "decir", "ver", "dar"),
    "advanced": ("concernir", "atañer", "yacer", "asir", "raer", "roer", "soler", "abolir"),
}
OTHER_CATEGORY = "other"

# Surface forms of the synthetic item returned when every fallback fails.
SENTINEL_FORM: Dict[str, str] = {
    "lemma": "ser",
    "mood": "indicative",
    "tense": "pres",
    "person": "1s",
    "value": "soy",
}
