"""
Configuration settings for the Content Decay Analyzer
"""

# Google OAuth Scopes
GSC_SCOPES = [
    'https://www.googleapis.com/auth/webmasters.readonly',
    'openid',
    'https://www.googleapis.com/auth/userinfo.email',
    'https://www.googleapis.com/auth/userinfo.profile'
]

ALL_SCOPES = GSC_SCOPES

USERINFO_URL = 'https://www.googleapis.com/oauth2/v2/userinfo'

# API Configuration
GSC_API_SERVICE = 'searchconsole'
GSC_API_VERSION = 'v1'

# Data limits
MAX_GSC_ROWS = 25000
PAGE_QUERY_ROWS = 1000
PAGINATION_DELAY_SECONDS = 0.5

# Search Console data lags by a few days
DATA_DELAY_DAYS = 3

# Comparison windows
DEFAULT_CURRENT_DAYS = 30
DEFAULT_PREVIOUS_DAYS = 30
RECENT_WINDOW_DAYS = 7
DAILY_TREND_DAYS = 90

DATE_RANGE_OPTIONS = {
    'Last 7 days': 7,
    'Last 14 days': 14,
    'Last 28 days': 28,
    'Last 30 days': 30,
    'Last 3 months': 90
}

# Decay diagnosis defaults
DECAY_WEIGHTS = {
    'clicks': 0.4,
    'impressions': 0.3,
    'ctr': 0.2,
    'position': 2.0
}
IDEAL_CTR = 0.20
CLIFF_THRESHOLD_PCT = -30.0
ZOMBIE_CTR_PCT = 0.5
DEFAULT_MIN_IMPRESSIONS = 50
DEFAULT_MIN_CLICKS = 0

# Cache
CACHE_MAX_AGE_SECONDS = 12 * 60 * 60
CACHE_PURGE_AGE_SECONDS = 7 * 24 * 60 * 60

# Background batch analysis
BATCH_SITE_LIMIT = 5
BATCH_SITE_DELAY_SECONDS = 3.0

# Page table
PAGE_TABLE_LIMIT = 30

# Chart colors
COLORS = {
    'primary': '#1f77b4',
    'critical': '#e53935',
    'warning': '#fb8c00',
    'monitoring': '#fdd835',
    'healthy': '#43a047',
    'neutral': '#95a5a6',
    'branded': '#9b59b6',
    'generic': '#3498db'
}

SEVERITY_ICONS = {
    'critical': '🔴',
    'warning': '🟠',
    'monitoring': '🟡',
    'healthy': '🟢'
}
