"""Analyze -> generate -> verify pipeline against the Gemini models."""
import base64
import logging
from dataclasses import dataclass
from io import BytesIO

import google.generativeai as genai
from PIL import Image

from boatvision import prompts
from boatvision import settings
from boatvision.errors import ImageGenerationError, MissingCredential, SourceRejected
from boatvision.models import AnalysisResult, ProcessResponse

logger = logging.getLogger(__name__)


@dataclass
class RenderRequest:
    """One source photo plus the style choices it should be rendered with."""

    image_bytes: bytes
    mime_type: str
    location: str
    lens: str
    dynamic: str
    include_interiors: bool


class BoatPipeline:
    """
    Runs the three Gemini calls for a single photo.

    analysis_model handles both the inspection and the verification pass;
    image_model synthesizes the on-water render.
    """

    def __init__(self, analysis_model, image_model):
        self.analysis_model = analysis_model
        self.image_model = image_model

    async def process(self, request: RenderRequest) -> ProcessResponse:
        # Sent as a raw blob so HEIC/HEIF reach Gemini without a local decoder
        source_image = {"mime_type": request.mime_type, "data": request.image_bytes}

        analysis = await self.analyze(source_image)
        if analysis.shouldReject:
            reason = analysis.rejectionReason or "Source image rejected"
            logger.info(f"Source image rejected: {reason}")
            raise SourceRejected(reason)

        prompt = prompts.build_prompt(
            request.location,
            request.lens,
            request.dynamic,
            request.include_interiors,
            analysis.insights,
        )
        image_bytes, image_mime = await self.generate(prompt)
        quality_report = await self.verify(image_bytes)

        encoded = base64.b64encode(image_bytes).decode("ascii")
        return ProcessResponse(
            generatedImage=f"data:{image_mime};base64,{encoded}",
            prompt=prompt,
            summary=analysis.summary or prompts.DEFAULT_SUMMARY,
            qualityReport=quality_report,
            insights=analysis.insights,
        )

    async def analyze(self, source_image) -> AnalysisResult:
        logger.info("Stage 1: analyzing source image")
        response = await self.analysis_model.generate_content_async(
            [prompts.ANALYSIS_INSTRUCTION, source_image],
            generation_config={"temperature": 0.2},
        )
        analysis = prompts.parse_analysis(_response_text(response))
        logger.debug(f"Analysis: {analysis}")
        return analysis

    async def generate(self, prompt: str):
        """Return (image bytes, mime type) for the first image part the model produces."""
        logger.info("Stage 2: generating on-water render")
        logger.debug(f"Prompt: {prompt}")
        response = await self.image_model.generate_content_async(
            [prompt],
            generation_config={"temperature": 0.2, "candidate_count": 1},
        )

        candidates = getattr(response, "candidates", None) or []
        if candidates:
            for part in candidates[0].content.parts:
                inline_data = getattr(part, "inline_data", None)
                if inline_data and inline_data.data:
                    return inline_data.data, inline_data.mime_type or "image/png"

        feedback = getattr(response, "prompt_feedback", None)
        block_reason = feedback.block_reason if feedback else "Unknown"
        raise ImageGenerationError(f"Image generation returned no data. Reason: {block_reason}")

    async def verify(self, image_bytes: bytes) -> str:
        logger.info("Stage 3: verifying render")
        generated_image = Image.open(BytesIO(image_bytes))
        response = await self.analysis_model.generate_content_async(
            [prompts.VERIFY_INSTRUCTION, generated_image],
            generation_config={"temperature": 0.3},
        )
        return _response_text(response)


def _response_text(response) -> str:
    # response.text raises when the candidate carries no text part
    try:
        return (response.text or "").strip()
    except ValueError:
        return ""


def create_pipeline() -> BoatPipeline:
    """Configure Gemini from settings and build the pipeline."""
    problems = settings.validate_config()
    if problems:
        raise MissingCredential("; ".join(problems))

    genai.configure(api_key=settings.GEMINI_API_KEY)
    return BoatPipeline(
        analysis_model=genai.GenerativeModel(model_name=settings.ANALYSIS_MODEL),
        image_model=genai.GenerativeModel(model_name=settings.IMAGE_MODEL),
    )
