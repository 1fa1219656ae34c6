from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from labextract.schemas.biomarker import BodySystem
from labextract.services.normalizer import normalize_name

# Unmapped names are grouped here rather than left without a body system.
DEFAULT_BODY_SYSTEM = BodySystem.METABOLISM

# Declaration order is significant: fuzzy-match ties go to the earlier entry.
BIOMARKER_SYSTEMS: tuple[tuple[str, BodySystem], ...] = (
    ("Erythrozyten", BodySystem.BLOOD),
    ("Hämoglobin (Hb)", BodySystem.BLOOD),
    ("Hämatokrit", BodySystem.BLOOD),
    ("MCV", BodySystem.BLOOD),
    ("MCH", BodySystem.BLOOD),
    ("MCHC", BodySystem.BLOOD),
    ("Thrombozyten", BodySystem.BLOOD),
    ("Leukozyten", BodySystem.BLOOD),
    ("Stabkern. Neutrophile", BodySystem.BLOOD),
    ("Segmentkern. Neutrophile", BodySystem.BLOOD),
    ("Eosinophile", BodySystem.BLOOD),
    ("Basophile", BodySystem.BLOOD),
    ("Lymphozyten", BodySystem.BLOOD),
    ("Monozyten", BodySystem.BLOOD),
    ("hsCRP", BodySystem.BLOOD),
    ("LDH", BodySystem.BLOOD),
    ("CK", BodySystem.BLOOD),
    ("Total Cholesterol", BodySystem.HEART),
    ("LDL", BodySystem.HEART),
    ("HDL", BodySystem.HEART),
    ("Triglyzeride", BodySystem.HEART),
    ("Apolipoprotein B (ApoB)", BodySystem.HEART),
    ("Apolipoprotein A1 (ApoA1)", BodySystem.HEART),
    ("Lipoprotein(a) [Lp(a)]", BodySystem.HEART),
    ("Omega-3-Index (EPA+DHA, Erythrozyten)", BodySystem.HEART),
    ("Homocystein", BodySystem.HEART),
    ("TSH", BodySystem.HORMONES),
    ("ft3", BodySystem.HORMONES),
    ("Ft4", BodySystem.HORMONES),
    ("Cortisol", BodySystem.HORMONES),
    ("Testosteron, gesamt", BodySystem.HORMONES),
    ("Testosteron, frei", BodySystem.HORMONES),
    ("Estradiol", BodySystem.HORMONES),
    ("Progesteron", BodySystem.HORMONES),
    ("Prolactin", BodySystem.HORMONES),
    ("FSH", BodySystem.HORMONES),
    ("LH", BodySystem.HORMONES),
    ("DHEA-S", BodySystem.HORMONES),
    ("SHBG", BodySystem.HORMONES),
    ("PSA", BodySystem.HORMONES),
    ("IgG", BodySystem.IMMUNITY),
    ("IgA", BodySystem.IMMUNITY),
    ("IgM", BodySystem.IMMUNITY),
    ("Kreatinin", BodySystem.KIDNEYS),
    ("eGFR", BodySystem.KIDNEYS),
    ("Harnstoff (BUN)", BodySystem.KIDNEYS),
    ("Osmolalität", BodySystem.KIDNEYS),
    ("GGT", BodySystem.LIVER),
    ("GPT", BodySystem.LIVER),
    ("GOT", BodySystem.LIVER),
    ("AP", BodySystem.LIVER),
    ("Billirubin", BodySystem.LIVER),
    ("Gesamteiweiß", BodySystem.LIVER),
    ("CHE", BodySystem.LIVER),
    ("Albumin", BodySystem.LIVER),
    ("Glucose", BodySystem.METABOLISM),
    ("HbA1c", BodySystem.METABOLISM),
    ("Insulin", BodySystem.METABOLISM),
    ("Harnsäure", BodySystem.METABOLISM),
    ("Amylase", BodySystem.METABOLISM),
    ("Lipase", BodySystem.METABOLISM),
    ("Vitamin B12", BodySystem.VITAMINS),
    ("Vitamin D3/25OH", BodySystem.VITAMINS),
    ("Folat (Vitamin B9)", BodySystem.VITAMINS),
    ("Selen", BodySystem.MINERALS),
    ("Zink", BodySystem.MINERALS),
    ("Magnesium", BodySystem.MINERALS),
    ("Ferritin", BodySystem.MINERALS),
    ("Transferrinsättigung", BodySystem.MINERALS),
    ("Kupfer", BodySystem.MINERALS),
    ("Eisen", BodySystem.MINERALS),
    ("Phosphat", BodySystem.MINERALS),
    ("GSH/Glutation", BodySystem.MINERALS),
    ("Natrium", BodySystem.MINERALS),
    ("Kalium", BodySystem.MINERALS),
    ("Calcium", BodySystem.MINERALS),
    ("Chlorid", BodySystem.MINERALS),
)


class BiomarkerTaxonomy(Mapping[str, BodySystem]):
    """Read-only, ordered mapping of canonical biomarker name to body system.

    Normalized names are computed once so concurrent matchers only ever read.
    """

    def __init__(self, entries: Iterable[tuple[str, BodySystem]]):
        systems: dict[str, BodySystem] = {}
        for name, body_system in entries:
            if name in systems:
                raise ValueError(f"Duplicate taxonomy entry: {name}")
            systems[name] = BodySystem(body_system)
        self._systems = MappingProxyType(systems)
        self._normalized = tuple((name, normalize_name(name)) for name in systems)

    def __getitem__(self, name: str) -> BodySystem:
        return self._systems[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._systems)

    def __len__(self) -> int:
        return len(self._systems)

    @property
    def normalized_names(self) -> tuple[tuple[str, str], ...]:
        """(canonical name, normalized name) pairs in declaration order."""
        return self._normalized

    def body_system_for(self, name: str | None) -> BodySystem:
        if name is not None and name in self._systems:
            return self._systems[name]
        return DEFAULT_BODY_SYSTEM

    def grouped(self) -> dict[BodySystem, list[str]]:
        groups: dict[BodySystem, list[str]] = {system: [] for system in BodySystem}
        for name, body_system in self._systems.items():
            groups[body_system].append(name)
        return groups


TAXONOMY = BiomarkerTaxonomy(BIOMARKER_SYSTEMS)
