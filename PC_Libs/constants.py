"""
Constants and configuration values for Prompt Canvas.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the application.
"""

# Editor constants
MIN_CROP_SIZE = 20
MIN_RESIZE_SIZE = 50
DEFAULT_CROP_FRACTION = 0.5
DEFAULT_CONTAINER_WIDTH = 800
DEFAULT_CONTAINER_HEIGHT = 600

# Editor modes
MODE_VIEWING = "viewing"
MODE_CROPPING = "cropping"
MODE_RESIZING = "resizing"

# Drag handles
HANDLE_MOVE = "move"
HANDLE_RESIZE_CORNER = "resize-corner"
HANDLE_CROP_TOP_LEFT = "crop-top-left"
HANDLE_CROP_TOP_RIGHT = "crop-top-right"
HANDLE_CROP_BOTTOM_LEFT = "crop-bottom-left"
HANDLE_CROP_BOTTOM_RIGHT = "crop-bottom-right"
HANDLE_HIT_RADIUS = 8

# Raster encoding
DEFAULT_OUTPUT_FORMAT = "PNG"
PNG_MEDIA_TYPE = "image/png"
DEFAULT_FILENAME_STEM = "ai-image"
FILENAME_PROMPT_CHARS = 20

# UI constants
DEFAULT_WINDOW_WIDTH = 1400
DEFAULT_WINDOW_HEIGHT = 850
HANDLE_DRAW_SIZE = 10
CROP_OVERLAY_COLOR = "#ffcc00"
RESIZE_OVERLAY_COLOR = "#6aeb8f"

# Services
DEFAULT_IMAGE_GENERATION_ENDPOINT = "https://n8n.courzey.com/webhook/image-gen"
DEFAULT_HTTP_TIMEOUT_SECONDS = 120.0
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
UPLOAD_FIELD_NAME = "image"

# Gallery
MAX_GALLERY_IMAGES = 20
GALLERY_FILE_NAME = "gallery.json"
DEFAULT_GALLERY_DIR = "Gallery"
DEFAULT_SQLITE_FILE = "gallery.db"
GALLERY_TABLE = "images"

# Database types
DB_TYPE_NONE = "none"
DB_TYPE_SQLITE = "sqlite"
DB_TYPE_POSTGRES = "postgres"

# Gallery field names
FIELD_ID = "id"
FIELD_STORAGE_URL = "storage_url"
FIELD_INLINE_DATA = "inline_data"
FIELD_PROMPT = "prompt"
FIELD_CREATED_AT = "created_at"
FIELD_ENTRIES = "entries"
