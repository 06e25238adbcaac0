USER_KEY = "app:user"
COMPLETIONS_KEY = "surveys.completions.v1"
DAILY_COMPLETIONS_KEY = "surveys.dailyCompletions.v1"
SURVEYS_VERSION_KEY = "surveys:version"

# keys whose change should make other clients reload their survey views
KEYS = {
    "SURVEYS_VERSION_KEY": SURVEYS_VERSION_KEY,
    "COMPLETIONS_KEY": COMPLETIONS_KEY,
    "USER_KEY": USER_KEY,
    "DAILY_COMPLETIONS_KEY": DAILY_COMPLETIONS_KEY,
}
WATCHED_KEYS = frozenset(KEYS.values())
