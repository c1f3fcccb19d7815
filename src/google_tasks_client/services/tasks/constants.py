# Request limits
MAX_RESULTS_LIMIT = 100
DEFAULT_MAX_RESULTS = 100
MAX_TITLE_LENGTH = 1024
MAX_NOTES_LENGTH = 8192

DEFAULT_TASK_LIST_ID = '@default'

# Task statuses
TASK_STATUS_NEEDS_ACTION = 'needsAction'
TASK_STATUS_COMPLETED = 'completed'
VALID_TASK_STATUSES = (TASK_STATUS_NEEDS_ACTION, TASK_STATUS_COMPLETED)

# Logical filters applied by the query pipeline
FILTER_COMPLETED = 'completed'
FILTER_NEEDS_ACTION = 'needsAction'
FILTER_OVERDUE = 'overdue'
VALID_FILTERS = (FILTER_COMPLETED, FILTER_NEEDS_ACTION, FILTER_OVERDUE)

# Logical sorts applied by the query pipeline
SORT_POSITION = 'position'
SORT_LATEST_FIRST = 'latest_first'
SORT_OLDEST_FIRST = 'oldest_first'
VALID_SORTS = (SORT_POSITION, SORT_LATEST_FIRST, SORT_OLDEST_FIRST)

# What the hierarchy builder does with a task whose parent is not in the page
ORPHANS_PROMOTE = 'promote'
ORPHANS_RAISE = 'raise'
VALID_ORPHAN_POLICIES = (ORPHANS_PROMOTE, ORPHANS_RAISE)

# HTTP statuses handled at the service boundary
HTTP_NOT_MODIFIED = 304
HTTP_BAD_REQUEST = 400
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_PRECONDITION_FAILED = 412

IF_NONE_MATCH_HEADER = 'If-None-Match'
