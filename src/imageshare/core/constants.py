"""Constants used throughout the application."""

# Upload constants
SUPPORTED_MIME_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/png": ".png",
    "image/apng": ".apng",
    "image/webp": ".webp",
    "image/avif": ".avif",
}
SUPPORTED_FILE_STRING = ", ".join(
    mime_type.split("/")[1].upper() for mime_type in SUPPORTED_MIME_TYPES
)
UPLOAD_FIELD = "img"
DEFAULT_IMG_TITLE = "ImageShare Upload"

# Title detection constants
EXIF_SCANNED_EXTENSIONS = (".jpg", ".jpeg", ".png")
NINTENDO_3DS_MODEL = "Nintendo 3DS"
EXIFTOOL_TIMEOUT = 10

# QR code constants
QR_IMAGE_SIZE = 350
QR_BORDER = 2

# Imgur constants
IMGUR_UPLOAD_URL = "https://api.imgur.com/3/image"
IMGUR_PAGE_URL = "https://imgur.com"
IMGUR_DESCRIPTION = "Uploaded by ImageShare (github -> corbindavenport/imageshare)"
IMGUR_RATE_LIMIT_THRESHOLD = 10
IMGUR_REMAINING_HEADER = "x-post-rate-limit-remaining"
IMGUR_RESET_HEADER = "x-post-rate-limit-reset"
IMGUR_TIMEOUT = 30

# Analytics constants
PLAUSIBLE_EVENT_URL = "https://plausible.io/api/event"
ANALYTICS_TIMEOUT = 10

# Rate limiting constants
UPLOAD_RATE_LIMIT = "30/minute"
SERVE_RATE_LIMIT = "120/minute"

# HTTP status codes
HTTP_400_BAD_REQUEST = 400
HTTP_404_NOT_FOUND = 404
HTTP_500_INTERNAL_SERVER_ERROR = 500

# Error messages
ERROR_INVALID_UPLOAD = "Invalid upload"
ERROR_UNSUPPORTED_TYPE = f"Unsupported file type. Supported types: {SUPPORTED_FILE_STRING}"
ERROR_FILE_TOO_LARGE = "File size too large."
ERROR_IMAGE_NOT_FOUND = "Image not found"
ERROR_QR_GENERATION = "Error generating QR code"
ERROR_SAVE_FAILED = "Could not save upload"
ERROR_INTERNAL = "Internal Server Error"
ERROR_IMGUR_CAPACITY = (
    "Imgur is currently at max capacity, so you will have to try again later. "
    "You can still upload to ImageShare though!"
)
ERROR_IMGUR_UPLOAD = (
    "There was an error uploading to Imgur. Make sure that your API Key is set "
    "and you haven't exceeded your rate limit."
)

# Application settings
APP_TITLE = "ImageShare"
APP_DESCRIPTION = (
    "ImageShare is a lightweight web app for uploading images, created for the "
    "Nintendo 3DS and other legacy web browsers."
)
APP_VERSION = "1.0.0"
