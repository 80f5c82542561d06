from io import BytesIO
from types import SimpleNamespace

from PIL import Image


def png_bytes(color=(10, 80, 160), size=(32, 32)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def text_response(text: str):
    return SimpleNamespace(text=text)


def image_response(data: bytes, mime_type: str = "image/png"):
    parts = [
        SimpleNamespace(text="Here is your render.", inline_data=None),
        SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type)),
    ]
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))],
        prompt_feedback=None,
    )


def blocked_response(reason: str = "SAFETY"):
    return SimpleNamespace(candidates=[], prompt_feedback=SimpleNamespace(block_reason=reason))


class FakeModel:
    """Stands in for genai.GenerativeModel, replaying canned responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def generate_content_async(self, contents, generation_config=None):
        self.calls.append((contents, generation_config))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response
