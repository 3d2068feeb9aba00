"""
Bilingual result views (English / Urdu).

Turns an `AnalysisResult` into the cards a client renders: localized titles and
labels, text direction, and per-field fallback from Urdu to English when the
model left an Urdu field empty. Layout and styling stay with the client.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from backend.agents.disease_detector import DiseaseDetection
from backend.agents.orchestrator import AnalysisResult
from backend.agents.plant_identifier import PlantIdentification
from backend.agents.treatment_advisor import TreatmentSuggestion

SUPPORTED_LANGUAGES = {
    "en": "English",
    "ur": "اردو",
}
DEFAULT_LANGUAGE = "en"

LABELS: Dict[str, Dict[str, str]] = {
    "en": {
        "disease_title": "Disease Detection",
        "status": "Status:",
        "healthy": "Healthy",
        "disease_detected": "Disease/Abnormality Detected",
        "likely_causes": "Likely Causes:",
        "treatment_title": "Treatment & Prevention",
        "solutions": "Suggested Solutions:",
        "prevention": "Preventative Measures:",
        "chemicals": "Chemical Treatments:",
        "products": "Example Products in Pakistan:",
        "notes": "Notes:",
    },
    "ur": {
        "disease_title": "بیماری کی تشخیص",
        "status": "کیفیت:",
        "healthy": "صحت مند",
        "disease_detected": "بیماری/خرابی کا پتہ چلا",
        "likely_causes": "ممکنہ وجوہات:",
        "treatment_title": "علاج اور روک تھام",
        "solutions": "تجویز کردہ حل:",
        "prevention": "احتیاطی تدابیر:",
        "chemicals": "کیمیائی علاج:",
        "products": "پاکستان میں دستیاب مثالی مصنوعات:",
        "notes": "نوٹ:",
    },
}

# The identification cards are always shown side by side, one per language.
ENGLISH_ID_CARD = {
    "title": "Plant Identification (English)",
    "common_name": "Common Name:",
    "latin_name": "Latin Name:",
    "confidence": "Confidence:",
    "wiki": "View on Wikipedia",
}
URDU_ID_CARD = {
    "title": "شناختِ نباتات (اردو)",
    "common_name": "عام نام:",
    "latin_name": "لاطینی نام (اردو):",
    "confidence": "اعتماد:",
}


class ViewField(BaseModel):
    label: str
    value: str
    kind: str = "text"  # text | badge | link | list


class ViewCard(BaseModel):
    kind: str
    title: str
    direction: str = "ltr"
    variant: str = "default"
    fields: List[ViewField] = Field(default_factory=list)
    children: List["ViewCard"] = Field(default_factory=list)


class ResultView(BaseModel):
    language: str
    direction: str
    cards: List[ViewCard] = Field(default_factory=list)


def normalize_language(language: Optional[str]) -> str:
    lang = (language or DEFAULT_LANGUAGE).strip().lower()
    if lang not in SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language '{language}'. Use one of: {', '.join(SUPPORTED_LANGUAGES)}")
    return lang


def direction_for(language: str) -> str:
    return "rtl" if language == "ur" else "ltr"


def format_confidence(confidence: float) -> str:
    return f"{confidence * 100:.1f}%"


def _pick(urdu: bool, english_text: str, urdu_text: str) -> str:
    return (urdu_text or english_text) if urdu else english_text


def plant_identification_cards(result: PlantIdentification) -> List[ViewCard]:
    english = result.englishIdentification
    confidence = format_confidence(result.confidence)

    en_card = ViewCard(
        kind="plant_identification",
        title=ENGLISH_ID_CARD["title"],
        fields=[
            ViewField(label=ENGLISH_ID_CARD["common_name"], value=english.commonName),
            ViewField(label=ENGLISH_ID_CARD["latin_name"], value=english.latinName),
            ViewField(label=ENGLISH_ID_CARD["confidence"], value=confidence, kind="badge"),
        ],
    )
    if result.wikiLink:
        en_card.fields.append(ViewField(label=ENGLISH_ID_CARD["wiki"], value=result.wikiLink, kind="link"))

    urdu = result.urduIdentification
    ur_card = ViewCard(kind="plant_identification_urdu", title=URDU_ID_CARD["title"], direction="rtl")
    if urdu.commonName:
        ur_card.fields.append(ViewField(label=URDU_ID_CARD["common_name"], value=urdu.commonName))
    if urdu.latinNameRepresentation:
        ur_card.fields.append(ViewField(label=URDU_ID_CARD["latin_name"], value=urdu.latinNameRepresentation))
    ur_card.fields.append(ViewField(label=URDU_ID_CARD["confidence"], value=confidence, kind="badge"))

    return [en_card, ur_card]


def disease_card(result: DiseaseDetection, language: str) -> ViewCard:
    labels = LABELS[language]
    is_urdu = language == "ur"

    if result.diseaseDetected:
        status = _pick(is_urdu, labels["disease_detected"], result.diseaseStatusUrdu)
    else:
        status = _pick(is_urdu, labels["healthy"], result.diseaseStatusUrdu)

    card = ViewCard(
        kind="disease_detection",
        title=labels["disease_title"],
        direction=direction_for(language),
        variant="destructive" if result.diseaseDetected else "default",
        fields=[ViewField(label=labels["status"], value=status, kind="badge")],
    )
    if result.diseaseDetected:
        causes = _pick(is_urdu, result.likelyCauses, result.likelyCausesUrdu)
        card.fields.append(ViewField(label=labels["likely_causes"], value=causes))
    return card


def treatment_card(result: TreatmentSuggestion, language: str) -> ViewCard:
    labels = LABELS[language]
    is_urdu = language == "ur"
    direction = direction_for(language)

    card = ViewCard(
        kind="treatment",
        title=labels["treatment_title"],
        direction=direction,
        fields=[
            ViewField(
                label=labels["solutions"],
                value=_pick(is_urdu, result.suggestedSolutions, result.suggestedSolutionsUrdu),
                kind="list",
            ),
            ViewField(
                label=labels["prevention"],
                value=_pick(is_urdu, result.preventativeMeasures, result.preventativeMeasuresUrdu),
                kind="list",
            ),
        ],
    )

    for chem in result.chemicalTreatments:
        chem_card = ViewCard(
            kind="chemical_treatment",
            title=_pick(is_urdu, chem.chemicalName, chem.chemicalNameUrdu),
            direction=direction,
            fields=[ViewField(label=labels["chemicals"], value=_pick(is_urdu, chem.instructions, chem.instructionsUrdu))],
        )
        for product in chem.productsInPakistan:
            details = ", ".join(p for p in (product.manufacturer, product.cropUsage) if p)
            value = f"{product.brandName} ({details})" if details else product.brandName
            chem_card.fields.append(ViewField(label=labels["products"], value=value))
        card.children.append(chem_card)

    if result.additionalNotes:
        card.fields.append(ViewField(label=labels["notes"], value=result.additionalNotes))
    return card


def build_result_view(result: Optional[AnalysisResult], language: str = DEFAULT_LANGUAGE) -> ResultView:
    language = normalize_language(language)
    view = ResultView(language=language, direction=direction_for(language))

    if result is None or not (
        result.error or result.plantIdentification or result.diseaseDetection or result.treatment
    ):
        view.cards.append(
            ViewCard(
                kind="awaiting_analysis",
                title="Awaiting Analysis",
                fields=[
                    ViewField(
                        label="",
                        value='Upload an image of a plant leaf and click "Analyze Leaf" to get started. '
                        "We'll identify the plant, check for diseases, and provide suggestions.",
                    )
                ],
            )
        )
        return view

    # An error replaces every other card
    if result.error:
        view.cards.append(
            ViewCard(kind="error", title="Error", variant="destructive", fields=[ViewField(label="", value=result.error)])
        )
        return view

    if result.plantIdentification:
        view.cards.extend(plant_identification_cards(result.plantIdentification))
    if result.diseaseDetection:
        view.cards.append(disease_card(result.diseaseDetection, language))
        if result.treatment and result.diseaseDetection.diseaseDetected:
            view.cards.append(treatment_card(result.treatment, language))
    return view
