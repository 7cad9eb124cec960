"""Model and knowledge base constants"""

# Model supporting the URL context tool
DEFAULT_MODEL = "gemini-2.5-flash"

# Per-group limits
MAX_URLS = 20
MAX_FILES = 50

# Safety thresholds applied to every request: (category, threshold)
SAFETY_THRESHOLDS = [
    ("HARM_CATEGORY_HARASSMENT", "BLOCK_MEDIUM_AND_ABOVE"),
    ("HARM_CATEGORY_HATE_SPEECH", "BLOCK_MEDIUM_AND_ABOVE"),
    ("HARM_CATEGORY_SEXUALLY_EXPLICIT", "BLOCK_MEDIUM_AND_ABOVE"),
    ("HARM_CATEGORY_DANGEROUS_CONTENT", "BLOCK_MEDIUM_AND_ABOVE"),
]

# Files with these MIME types are sent inline as base64, everything else as text
INLINE_MIME_PREFIXES = ("image/", "audio/", "video/")
INLINE_MIME_TYPES = {"application/pdf"}
FALLBACK_MIME_TYPE = "application/octet-stream"

GEMINI_DOCS_URLS = [
    "https://ai.google.dev/gemini-api/docs",
    "https://ai.google.dev/gemini-api/docs/quickstart",
    "https://ai.google.dev/gemini-api/docs/api-key",
    "https://ai.google.dev/gemini-api/docs/libraries",
    "https://ai.google.dev/gemini-api/docs/models",
    "https://ai.google.dev/gemini-api/docs/pricing",
    "https://ai.google.dev/gemini-api/docs/rate-limits",
    "https://ai.google.dev/gemini-api/docs/billing",
    "https://ai.google.dev/gemini-api/docs/changelog",
]

MODEL_CAPABILITIES_URLS = [
    "https://ai.google.dev/gemini-api/docs/text-generation",
    "https://ai.google.dev/gemini-api/docs/image-generation",
    "https://ai.google.dev/gemini-api/docs/video",
    "https://ai.google.dev/gemini-api/docs/speech-generation",
    "https://ai.google.dev/gemini-api/docs/music-generation",
    "https://ai.google.dev/gemini-api/docs/long-context",
    "https://ai.google.dev/gemini-api/docs/structured-output",
    "https://ai.google.dev/gemini-api/docs/thinking",
    "https://ai.google.dev/gemini-api/docs/function-calling",
    "https://ai.google.dev/gemini-api/docs/document-processing",
    "https://ai.google.dev/gemini-api/docs/image-understanding",
    "https://ai.google.dev/gemini-api/docs/video-understanding",
    "https://ai.google.dev/gemini-api/docs/audio",
    "https://ai.google.dev/gemini-api/docs/code-execution",
    "https://ai.google.dev/gemini-api/docs/grounding",
]

# Seed groups: (id, name, urls)
INITIAL_URL_GROUPS = [
    ("gemini-overview", "Gemini Docs Overview", GEMINI_DOCS_URLS),
    ("model-capabilities", "Model Capabilities", MODEL_CAPABILITIES_URLS),
]
