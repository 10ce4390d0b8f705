"""Global constants for the talenthub application."""

# Database-related constants
FIRESTORE_BATCH_LIMIT = 400
CASCADE_MAX_WORKERS = 8
CASCADE_WAIT_SECONDS = 20.0

# Collection names
USERS = "users"
PROJECTS = "client_projects"
EVENTS = "tech_events"
COMPLETION_REQUESTS = "project_completion_requests"
GROUPS = "groups"
GROUP_MEMBERS = "group_members"
GROUP_POSTS = "group_posts"
GROUP_POST_REPLIES = "post_replies"
COMPANIES = "companies"
COMPANY_MEMBERS = "company_members"
COMPANY_POSTS = "company_posts"
COMPANY_COMMENTS = "company_comments"
POSTS = "posts"
POST_REPLIES_SUBCOLLECTION = "replies"
PROJECT_APPLICATIONS = "project_applications"
EVENT_REGISTRATIONS = "event_registrations"
MEMBER_BADGES = "member_badges"
CERTIFICATES = "certificates"
NOTIFICATIONS = "notifications"
CASCADE_JOBS = "cascade_jobs"

# Deletion confirmation phrases, matched exactly
PHRASE_DELETE = "DELETE"
PHRASE_DELETE_GROUP = "DELETE GROUP"
PHRASE_DELETE_COMPANY = "DELETE COMPANY"
PHRASE_DELETE_ALL = "DELETE ALL"
PHRASE_DELETE_ALL_COMPANIES = "DELETE ALL COMPANIES"

# Email relay endpoint keys
EMAIL_PROJECT_APPROVED = "send-project-approved"
EMAIL_PROJECT_REJECTED = "send-project-rejected"
EMAIL_EVENT_PUBLISHED = "send-event-published"
EMAIL_EVENT_REJECTED = "send-event-rejected"
EMAIL_REVIEW_APPROVED = "send-project-review-approved"
EMAIL_REVIEW_REJECTED = "send-project-review-rejected"
EMAIL_APPLICATION_APPROVED = "send-application-approved"
EMAIL_APPLICATION_REJECTED = "send-application-rejected"
EMAIL_SUBMITTED_FOR_REVIEW = "send-project-submitted-for-review"
EMAIL_BADGE_AWARDED = "send-badge-awarded"

# Header carrying the shared secret between EmailDispatcher and the relay
RELAY_SECRET_HEADER = "X-Relay-Secret"

# Display name fallbacks
GROUP_NAME_FALLBACK = "Team Member"
COMPANY_NAME_FALLBACK = "Professional User"

# Group defaults applied when a project is approved
DEFAULT_MAX_MEMBERS = 10
DEFAULT_MEMBER_PROJECT_ROLE = "Developer"
OWNER_PROJECT_ROLE = "Project Owner"

# Content limits
MAX_POST_LENGTH = 5000
MAX_COMMENT_LENGTH = 1000

# Badge assignment when a project is completed
BADGE_CATEGORIES = (
    "mentorship",
    "quality-assurance",
    "development",
    "leadership",
    "design",
    "security",
)
BADGE_LEVELS = ("novice", "beginners", "intermediate", "expert")
CONTRIBUTION_LEVELS = ("poor", "fair", "good", "excellent")
