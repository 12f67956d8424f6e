"""Application constants - all magic numbers centralized."""

# Draft generation
MAX_TOOL_ITERATIONS = 5  # Model calls per tool-use loop
AGENT_MAX_TOKENS = 4096
DEFAULT_SUBJECT = "General Question"
FALLBACK_REPLY = "I received your message. Let me think about this and get back to you."

# Conversation-ending detection
ENDING_SHORT_MAX_WORDS = 8
ENDING_EXCITEMENT_MAX_WORDS = 15

# Thread projection
SUBJECT_KEY_MAX_CHARS = 50
THREAD_PREVIEW_MAX_CHARS = 100

# Context assembly
DEFAULT_HISTORY_LIMIT = 20
PHASE1_TARGET_DAYS = 45  # 1.5 months
RECENT_DAILY_NOTES = 5
DAILY_NOTES_LIMIT = 30

# Curriculum shape
TOTAL_TOPICS = 8  # Phase I video topics
TOTAL_MILESTONES = 5  # Phase II roadmap milestones
ROADMAP_DURATIONS = (8, 10, 12)  # weeks
DEFAULT_ROADMAP_WEEKS = 10

# Engagement (days since last student message)
INACTIVE_DEFAULT_MIN_DAYS = 3
URGENCY_CRITICAL_DAYS = 14
URGENCY_HIGH_DAYS = 7
URGENCY_MEDIUM_DAYS = 3

# Attachments the agent model can read inline
INLINE_IMAGE_TYPES = {"image/png", "image/jpeg", "image/gif", "image/webp"}
INLINE_DOCUMENT_TYPES = {"application/pdf"}
MAX_INLINE_ATTACHMENT_BYTES = 5 * 1024 * 1024

# Storage prefixes
ATTACHMENTS_PREFIX = "attachments"
ROADMAPS_PREFIX = "roadmaps"
VOICE_NOTES_PREFIX = "voice-notes"
