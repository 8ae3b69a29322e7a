STANDARD_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tif", ".tiff", ".webp"}
HEIF_EXTENSIONS = {".heic", ".heif", ".hif"}
SUPPORTED_EXTENSIONS = STANDARD_EXTENSIONS | HEIF_EXTENSIONS

FIT_INSIDE = "inside"
FIT_OUTSIDE = "outside"
FIT_FILL = "fill"
FIT_OPTIONS = (FIT_INSIDE, FIT_OUTSIDE, FIT_FILL)

SCALE_DOWN = "down"
SCALE_UP = "up"
SCALE_ANY = "any"
SCALE_OPTIONS = (SCALE_DOWN, SCALE_UP, SCALE_ANY)

HORIZONTAL_EDGES = ("left", "right")
VERTICAL_EDGES = ("top", "bottom")

# ImageMagick gravity per (horizontal, vertical) edge pair
GRAVITY_BY_EDGES = {
    ("left", "top"): "NorthWest",
    ("right", "top"): "NorthEast",
    ("left", "bottom"): "SouthWest",
    ("right", "bottom"): "SouthEast",
}

DEFAULT_QUALITY = 90

BACKEND_AUTO = "auto"
BACKEND_PILLOW = "pillow"
BACKEND_MAGICK = "magick"
BACKEND_OPTIONS = (BACKEND_AUTO, BACKEND_PILLOW, BACKEND_MAGICK)

OPTIMIZE_MAX_WIDTH = 2816
OPTIMIZE_MAX_HEIGHT = 2112
OPTIMIZE_QUALITY = 80
OPTIMIZE_FORMATS = {"JPEG", "PNG", "GIF", "BMP"}

ENGINE_AUTO = "auto"
ENGINE_EXTERNAL = "external"
ENGINE_PILLOW = "pillow"
ENGINE_OPTIONS = (ENGINE_AUTO, ENGINE_EXTERNAL, ENGINE_PILLOW)

# Pillow format name -> (file suffix, MIME type)
FORMAT_INFO = {
    "JPEG": (".jpg", "image/jpeg"),
    "PNG": (".png", "image/png"),
    "GIF": (".gif", "image/gif"),
    "BMP": (".bmp", "image/bmp"),
    "TIFF": (".tif", "image/tiff"),
    "WEBP": (".webp", "image/webp"),
}

SUFFIX_TO_FORMAT = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".gif": "GIF",
    ".bmp": "BMP",
    ".tif": "TIFF",
    ".tiff": "TIFF",
    ".webp": "WEBP",
}
