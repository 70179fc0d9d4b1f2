"""Constant definitions for chatboxbot."""

# Forum defaults
DEFAULT_SERVER_ENCODING = "windows-1252"
DEFAULT_TIMEOUT_SECONDS = 30.0

# Polling
DEFAULT_POLL_INTERVAL_SECONDS = 5.0
DEFAULT_MAX_PENALTY = 6
DEFAULT_SMILEY_REFRESH_SECONDS = 3600.0

# Outbound filtering
DEFAULT_MAX_COMBINING_MARKS = 4

# Relative URLs of the forum pages the connector talks to
LOGIN_PATH = "login.php?do=login"
CHEAP_PAGE_PATH = "faq.php"
POST_EDIT_PATH = "misc.php"
MESSAGES_PATH = "misc.php?show=ccbmessages"
SMILIES_PATH = "misc.php?do=showsmilies"
AJAX_PATH = "ajax.php"

# Link fragments directly followed by an id
MESSAGE_ID_PIECE = "misc.php?ccbloc="
USER_ID_PIECE = "member.php?u="
POST_ID_PIECE = "showthread.php?p="
