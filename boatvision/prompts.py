"""Prompt text for the three Gemini calls and parsing of the analyst's reply."""
import json
import logging
from typing import Optional

from boatvision.models import (
    DEFAULT_DYNAMIC,
    DEFAULT_LENS,
    DEFAULT_LOCATION,
    AnalysisResult,
    InsightBundle,
)

logger = logging.getLogger(__name__)

ANALYSIS_INSTRUCTION = (
    "You are a marine photo analyst. Inspect the image for boats on trailers and dealership backdrops. "
    "Return JSON with keys: shouldReject (boolean), rejectionReason (string), summary (string), "
    "boatOverview, visualFocalPoints, locationAdaptation. "
    "shouldReject must be true if any trailer parts, parking lot, ramps, vehicles, or dealership clutter "
    "dominate the frame or if the boat is occluded."
)

VERIFY_INSTRUCTION = (
    "You are a marine art director. Inspect the generated photo for lingering trailer fragments, "
    "warped hulls, or water physics issues. "
    "Respond with a short paragraph describing quality, authenticity, and any detected issues. "
    "Flag any problem explicitly."
)

UNPARSED_SUMMARY = "Unable to parse structured inspection; proceeding with default transformation."
DEFAULT_SUMMARY = "Marine transformation and trailer cleanup completed successfully."

LENS_LEXICON = {
    "wide-immersive": "ultra-wide 18mm lens, low horizon, cinematic atmosphere, immersive scale",
    "action-zoom": "high-speed telephoto capture, sweeping rooster tail, tack sharp hull detail",
    "luxury-showcase": "mid focal length lifestyle showcase, golden hour polish, upscale staging",
}

DYNAMIC_DIRECTIVES = {
    "running": "capture hull-on-plane, spray arcs, strong diagonal energy, sense of motion",
    "anchored": "quiet anchorage, glassy reflections, relaxed lifestyle moment with tasteful props",
    "harbor": "arrival sequence past iconic marina landmarks, soft dusk lighting, warm hospitality",
}

TRANSFORM_DIRECTIVE = "Transform this vessel into a premium marketing render shot on the water."
QUALITY_CLAUSE = (
    "Hyper-realistic photographic lighting, zero distortion, glossy magazine quality, "
    "square 1:1 frame at 1024x1024."
)

INSIGHT_KEYS = ("boatOverview", "visualFocalPoints", "locationAdaptation")


def lens_directive(lens: str) -> str:
    return LENS_LEXICON.get(lens, LENS_LEXICON[DEFAULT_LENS])


def dynamic_directive(dynamic: str) -> str:
    return DYNAMIC_DIRECTIVES.get(dynamic, DYNAMIC_DIRECTIVES[DEFAULT_DYNAMIC])


def reinforcement_clause(include_interiors: bool) -> str:
    return " ".join([
        "No trailers, parking lots, or dealership backgrounds.",
        "Boat dominates the frame with authentic reflections and crisp wake physics.",
        "Match hull lines, colors, and trim accents from the source description.",
        "Deliver a secondary interior vantage with luxurious wide-angle cabin framing."
        if include_interiors
        else "Focus solely on exterior hero shot.",
    ])


def build_prompt(location: str, lens: str, dynamic: str, include_interiors: bool,
                 insights: Optional[InsightBundle] = None) -> str:
    """Assemble the image-generation prompt from the style choices and analysis insights."""
    insights = insights or InsightBundle()
    location = location or DEFAULT_LOCATION
    return " ".join([
        TRANSFORM_DIRECTIVE,
        f"Locale: {location}.",
        f"Lens profile: {lens_directive(lens)}.",
        f"Shot dynamic: {dynamic_directive(dynamic)}.",
        f"Boat summary: {insights.boatOverview or 'modern powerboat.'}",
        f"Key focal points: {insights.visualFocalPoints or 'sleek hull, helm, passengers if present.'}",
        f"Local cues: {insights.locationAdaptation or 'match regional water coloration and skyline.'}",
        reinforcement_clause(include_interiors),
        QUALITY_CLAUSE,
    ])


def extract_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} span in text, or None.

    Braces inside JSON string literals are ignored, so a reason such as
    "trailer {partially} visible" does not end the span early.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def parse_analysis(text: str) -> AnalysisResult:
    """
    Parse the analyst's free text into an AnalysisResult.

    Insight fields may arrive nested under "insights" or flat at the top level.
    Text with no decodable object degrades to a non-rejecting default. Once an
    object decodes, the rejection flag always counts; malformed summary or
    insight values are dropped one field at a time.
    """
    span = extract_json_object(text)
    data = None
    if span is not None:
        try:
            data = json.loads(span)
        except json.JSONDecodeError as e:
            logger.warning(f"Analysis JSON did not decode: {e}")

    if not isinstance(data, dict):
        logger.warning("No structured analysis found; using default transformation")
        return AnalysisResult(summary=UNPARSED_SUMMARY)

    nested = data.get("insights") if isinstance(data.get("insights"), dict) else {}
    insights = {}
    for key in INSIGHT_KEYS:
        value = _as_text(nested.get(key, data.get(key)))
        if value is not None:
            insights[key] = value

    return AnalysisResult(
        shouldReject=_as_flag(data.get("shouldReject", False)),
        rejectionReason=_as_text(data.get("rejectionReason")),
        summary=_as_text(data.get("summary")),
        insights=InsightBundle(**insights),
    )


def _as_flag(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _as_text(value) -> Optional[str]:
    """Coerce a scalar to a non-empty string; containers and blanks become None."""
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None
