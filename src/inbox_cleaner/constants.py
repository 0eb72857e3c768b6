"""Constants for Inbox Cleaner."""

from pathlib import Path

# --- Config paths ---
CONFIG_DIR = Path.home() / ".inbox-cleaner"
CREDENTIALS_PATH = CONFIG_DIR / "credentials.json"
TOKEN_PATH = CONFIG_DIR / "token.json"

# --- Gmail API ---
SCOPES = ["https://www.googleapis.com/auth/gmail.modify"]
BATCH_SIZE = 50  # messages per BatchHttpRequest
PAGE_SIZE = 500  # messages per list page
MODIFY_BATCH_SIZE = 1000  # messages per batchModify call
METADATA_HEADERS = ["Subject", "From", "To", "Date", "List-Unsubscribe", "Unsubscribe"]

# --- Query fragments ---
UNREAD_QUERY = "is:unread"
HAS_LIST_QUERY = "has:list"
NEWSLETTER_QUERY = f"from:newsletter OR from:noreply OR {HAS_LIST_QUERY}"
NEWSLETTER_SEARCH_TERMS = "(from:newsletter OR from:noreply OR from:no-reply OR subject:unsubscribe OR has:list)"
QUERY_DATE_FORMAT = "%Y/%m/%d"

# --- Classification ---
NEWSLETTER_INDICATORS = [
    "newsletter",
    "noreply",
    "no-reply",
    "donotreply",
    "marketing",
    "promo",
    "unsubscribe",
    "digest",
    "weekly",
    "monthly",
    "updates",
]

# (category, fields searched, keywords), evaluated in order after the
# newsletter check. "text" is subject + sender + snippet.
CATEGORY_RULES = [
    ("promotional", ("text",), ["sale", "offer", "discount", "promo", "%", "deal"]),
    ("work", ("sender",), ["slack", "jira", "github", "confluence"]),
    ("work", ("subject",), ["meeting", "deadline", "project"]),
    ("social", ("sender",), ["facebook", "twitter", "linkedin", "instagram", "youtube", "tiktok"]),
    ("transactional", ("subject",), ["receipt", "order", "payment", "invoice", "confirmation", "shipping"]),
]

AUTOMATED_SENDER_MARKERS = ["noreply", "no-reply"]
PERSONAL_MAX_TEXT_LENGTH = 200

POSITIVE_WORDS = ["thanks", "great", "awesome", "congratulations", "welcome", "success"]
NEGATIVE_WORDS = ["urgent", "problem", "issue", "error", "failed", "suspended", "expired"]
URGENT_WORDS = ["urgent", "immediate", "asap", "deadline", "expire", "final notice"]

NEWSLETTER_BUCKETS = [
    ("marketing", ["sale", "offer", "discount", "promo", "deal", "shop"]),
    ("news", ["newsletter", "digest", "weekly", "daily", "update", "news"]),
    ("social", ["facebook", "twitter", "linkedin", "instagram", "notification"]),
    ("transactional", ["receipt", "order", "payment", "invoice", "confirmation"]),
]

# --- Unsubscribe detection ---
UNSUBSCRIBE_HREF_HINTS = ["unsubscribe", "optout", "opt-out"]
UNSUBSCRIBE_TEXT_HINTS = ["unsubscribe", "opt out", "remove me", "stop emails", "email preferences"]
UNSUBSCRIBE_ATTRIBUTE_SELECTORS = ['[data-testid*="unsubscribe"]', ".unsubscribe a", "#unsubscribe a"]
UNSUBSCRIBE_KEYWORDS = [
    "unsubscribe",
    "optout",
    "opt-out",
    "remove",
    "stop",
    "email-preferences",
    "preferences",
]
UNSUBSCRIBE_FORM_HINTS = ["unsubscribe", "opt out"]
HEADER_CONFIDENCE = 0.9
BASE_CONFIDENCE = 0.5
MENTION_CONFIDENCE_STEP = 0.1
MENTION_CONFIDENCE_CAP = 0.3
HTTPS_CONFIDENCE_WEIGHT = 0.2

UNSUBSCRIBE_TIMEOUT = 10.0  # seconds
USER_AGENT = "Mozilla/5.0 (compatible; EmailCleaner/1.0)"

# --- Insights ---
OLD_EMAIL_DAYS = 30
LARGE_EMAIL_BYTES = 5_000_000
TOP_SENDERS_LIMIT = 10
MAX_INSIGHTS = 10

HIGH_UNREAD_THRESHOLD = 1000
UNREAD_NEWSLETTER_THRESHOLD = 50
LARGE_EMAIL_THRESHOLD = 20
TOP_SENDER_COUNT_THRESHOLD = 50
TOP_SENDER_UNREAD_THRESHOLD = 20
DUPLICATE_THRESHOLD = 10
UNREAD_RATIO_THRESHOLD = 0.3
SUSPICIOUS_THRESHOLD = 5

LARGE_EMAIL_SEARCH = "larger:10M older_than:6m"

PHISHING_KEYWORDS = [
    "urgent",
    "verify account",
    "suspended",
    "click here",
    "limited time",
    "act now",
    "confirm identity",
]
SUSPICIOUS_TLDS = [".tk", ".ml"]

DAYS_OF_WEEK = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# --- AI providers ---
GEMINI_MODEL = "gemini-1.5-flash"
HUGGINGFACE_API_URL = "https://api-inference.huggingface.co/models"
HUGGINGFACE_TEXT_MODEL = "microsoft/DialoGPT-medium"
HUGGINGFACE_ZERO_SHOT_MODEL = "facebook/bart-large-mnli"
HUGGINGFACE_LABELS = ["newsletter", "promotional", "personal", "work", "social", "transactional"]
SUMMARY_SAMPLE_SIZE = 10
MAX_PROVIDER_INSIGHTS = 3

# --- Actions ---
NEWSLETTER_SEARCH_LIMIT = 100
OLD_EMAIL_FETCH_LIMIT = 100
LARGE_EMAIL_FETCH_LIMIT = 50
BULK_UNSUBSCRIBE_LIMIT = 20
DEFAULT_SAMPLE_SIZE = 200
LARGE_EMAIL_SIZE_MB = 10
LARGE_EMAIL_AGE_DAYS = 180
REMOVE_ACTIONS = ["trash", "archive", "delete"]
