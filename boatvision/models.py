"""Data models shared by the endpoint and the queue client."""
import enum
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProcessingStatus(str, enum.Enum):
    IDLE = "idle"
    READY = "ready"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    VERIFYING = "verifying"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_eligible(self) -> bool:
        """True when a processing pass should pick the item up."""
        return self in (ProcessingStatus.IDLE, ProcessingStatus.READY)


# --- Style options ---

@dataclass(frozen=True)
class StyleOption:
    id: str
    label: str
    description: str


LENS_PROFILES = [
    StyleOption("wide-immersive", "Wide Immersive",
                "Dramatic sweep with immersive horizon lines and cinematic depth."),
    StyleOption("action-zoom", "Action Zoom",
                "Telephoto burst capturing speed, rooster tails, and tight detail."),
    StyleOption("luxury-showcase", "Luxury Showcase",
                "Focused on premium finishes, lifestyle staging, and deck layouts."),
]

SHOT_DYNAMICS = [
    StyleOption("running", "Running Shot",
                "Full-throttle carving with crisp wake detail and dynamic spray."),
    StyleOption("anchored", "Anchored Lifestyle",
                "Calm water, scenic anchorage, elegant composition for brochures."),
    StyleOption("harbor", "Harbor Arrival",
                "Iconic local landmarks, marina energy, and on-brand mood."),
]

LOCATION_EXAMPLES = [
    "Fort Lauderdale, FL (Intracoastal Waterway)",
    "San Diego, CA (Mission Bay)",
    "Seattle, WA (Lake Union)",
    "Lake of the Ozarks, MO",
]

SUPPORTED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/heic",
    "image/heif",
})

DEFAULT_LOCATION = "Local waterways"
DEFAULT_LENS = "wide-immersive"
DEFAULT_DYNAMIC = "running"


@dataclass(frozen=True)
class StyleParameters:
    """Style choices captured once per processing pass."""

    location: str = ""
    lens: str = DEFAULT_LENS
    dynamic: str = DEFAULT_DYNAMIC
    include_interiors: bool = True

    def as_form(self) -> dict:
        return {
            "location": self.location,
            "lens": self.lens,
            "dynamic": self.dynamic,
            "includeInteriors": "true" if self.include_interiors else "false",
        }


# --- Pydantic Models ---

class InsightBundle(BaseModel):
    model_config = ConfigDict(frozen=True)

    boatOverview: Optional[str] = None
    visualFocalPoints: Optional[str] = None
    locationAdaptation: Optional[str] = None


class AnalysisResult(BaseModel):
    shouldReject: bool = False
    rejectionReason: Optional[str] = None
    summary: Optional[str] = None
    insights: InsightBundle = Field(default_factory=InsightBundle)


class ProcessResponse(BaseModel):
    generatedImage: str = Field(..., description="The generated render as a data URI.")
    prompt: str = Field(..., description="The exact prompt sent to the image model.")
    summary: str
    qualityReport: str = Field(..., description="Advisory text from the verification pass.")
    insights: InsightBundle = Field(default_factory=InsightBundle)


class ProcessedResult(BaseModel):
    """A finished render attached to a queue item."""

    model_config = ConfigDict(frozen=True)

    final_image: str
    prompt: str
    summary: str
    quality_report: str
    insights: InsightBundle = Field(default_factory=InsightBundle)

    @classmethod
    def from_response(cls, payload: ProcessResponse) -> "ProcessedResult":
        return cls(
            final_image=payload.generatedImage,
            prompt=payload.prompt,
            summary=payload.summary,
            quality_report=payload.qualityReport,
            insights=payload.insights,
        )
