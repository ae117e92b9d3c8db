"""
Configuration constants for contentful-sync.
"""

# --- Naming Convention ---
# Only files starting with this marker are synced
SYNC_MARKER = '$'
IMAGE_EXT = '.jpg'

# Generated copies live under this directory at the tree root and carry the suffix
GENERATED_DIR_NAME = 'watermarked'
GENERATED_SUFFIX = '-watermarked'

# --- Identity Token ---
# Stored in EXIF XPComment (0th IFD) as UTF-16LE text: PREFIX + asset id
TOKEN_EXIF_TAG = 40092
TOKEN_PREFIX = 'contentfulImageId-'
TOKEN_ENCODING = 'utf-16-le'

# --- Watermarking ---
# Mark width as a fraction of the image width
WATERMARK_RATIO_LANDSCAPE = 0.387  # square or landscape
WATERMARK_RATIO_PORTRAIT = 0.749
WATERMARK_QUALITY = 88
WATERMARK_TEXT = '©'
WATERMARK_TEXT_OPACITY = 160

# --- Contentful ---
CONTENTFUL_API_URL = 'https://api.contentful.com'
CONTENTFUL_UPLOAD_URL = 'https://upload.contentful.com'
DEFAULT_ENVIRONMENT = 'master'
DEFAULT_LOCALE = 'en-US'
ASSET_CONTENT_TYPE = 'image/jpeg'
LIST_PAGE_SIZE = 100
REQUEST_TIMEOUT = 30  # seconds

# Asset processing is async on Contentful's side; poll until the file has a url
PROCESSING_CHECK_WAIT = 2.0  # seconds
PROCESSING_MAX_CHECKS = 10

# --- Runtime ---
DEFAULT_MAX_WORKERS = 3
QUEUE_POLL_INTERVAL = 0.5  # seconds

# --- Logging ---
DEFAULT_LOG_DIR = 'logs'
LOG_FILE_NAME = 'contentful-sync.log'
LOG_ROTATE_WHEN = 'H'
LOG_BACKUP_COUNT = 90 * 24  # 90 days of hourly files
