import logging
from dataclasses import asdict
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from boatvision import __version__, settings
from boatvision.errors import ImageGenerationError, MissingCredential, SourceRejected
from boatvision.logging_conf import setup_logging
from boatvision.models import (
    DEFAULT_DYNAMIC,
    DEFAULT_LENS,
    DEFAULT_LOCATION,
    LENS_PROFILES,
    LOCATION_EXAMPLES,
    SHOT_DYNAMICS,
    SUPPORTED_MIME_TYPES,
    ProcessResponse,
)
from boatvision.pipeline import BoatPipeline, RenderRequest, create_pipeline

setup_logging()
logger = logging.getLogger(__name__)

# --- FastAPI Application Setup ---
app = FastAPI(
    title="Boat Vision API",
    description="Turns trailer-lot boat photos into on-water marketing renders with a three-step AI process.",
    version=__version__,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_pipeline() -> BoatPipeline:
    """Build the Gemini pipeline, failing fast when settings are incomplete."""
    try:
        return create_pipeline()
    except MissingCredential as e:
        logger.error(str(e))
        raise HTTPException(status_code=500, detail=str(e))


@app.exception_handler(RequestValidationError)
async def form_validation_error(request: Request, exc: RequestValidationError):
    # 422 on /api/process is reserved for rejected photos
    if request.url.path != "/api/process":
        return await request_validation_exception_handler(request, exc)

    if any(tuple(error.get("loc", ()))[-1:] == ("image",) for error in exc.errors()):
        return JSONResponse(status_code=400, content={"detail": "Missing upload"})
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


# --- API Endpoints ---
@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/styles")
async def list_styles():
    return {
        "lenses": [asdict(option) for option in LENS_PROFILES],
        "dynamics": [asdict(option) for option in SHOT_DYNAMICS],
        "locationExamples": LOCATION_EXAMPLES,
        "supportedMimeTypes": sorted(SUPPORTED_MIME_TYPES),
    }


@app.post("/api/process",
    response_model=ProcessResponse,
    responses={
        400: {"description": "No image was uploaded."},
        422: {"description": "The source photo was rejected by the analysis model."},
        500: {"description": "Missing GEMINI_API_KEY or an unhandled failure."},
    },
)
async def process_image(
    pipeline: BoatPipeline = Depends(get_pipeline),
    image: Optional[UploadFile] = File(None),
    location: str = Form(""),
    lens: str = Form(DEFAULT_LENS),
    dynamic: str = Form(DEFAULT_DYNAMIC),
    includeInteriors: str = Form("false"),
):
    if image is None:
        raise HTTPException(status_code=400, detail="Missing upload")

    try:
        request = RenderRequest(
            image_bytes=await image.read(),
            mime_type=image.content_type or "image/jpeg",
            location=location or DEFAULT_LOCATION,
            lens=lens or DEFAULT_LENS,
            dynamic=dynamic or DEFAULT_DYNAMIC,
            include_interiors=includeInteriors == "true",
        )
        logger.info(
            f"Processing {image.filename} (location={request.location}, lens={request.lens}, "
            f"dynamic={request.dynamic}, interiors={request.include_interiors})"
        )
        result = await pipeline.process(request)
        logger.info(f"Finished {image.filename}")
        return result
    except SourceRejected as e:
        raise HTTPException(
            status_code=422,
            detail={"error": "Source image rejected", "reason": e.reason},
        )
    except ImageGenerationError as e:
        logger.error(f"Image generation failed for {image.filename}: {e}")
        raise HTTPException(status_code=500, detail=f"Image generation failed. {e}")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Processing failed for {image.filename}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An internal server error occurred: {str(e)}")
