# services/cache_keys.py

COURSE_PREFIX = "course:"
COURSES_LIST_PREFIX = "courses_list:"

def course_key(course_id: str) -> str:
    return f"{COURSE_PREFIX}{course_id}"

def courses_list_key(filters_hash: str) -> str:
    return f"{COURSES_LIST_PREFIX}{filters_hash}"

def featured_courses_key() -> str:
    return f"{COURSES_LIST_PREFIX}featured"

def popular_courses_key() -> str:
    return f"{COURSES_LIST_PREFIX}popular"

# Auth/session
def user_session_key(uid: str) -> str:
    return f"user_session:{uid}"

def blacklisted_jti_key(jti: str) -> str:
    return f"blacklisted_tokens:{jti}"

def refresh_tokens_key(uid: str) -> str:
    return f"refresh_tokens:{uid}"
