"""Application constants."""

USER_AGENT = "smilefjes-map/0.3 (+food-safety map; contact: configured-email)"

BRREG_SUB_ENTITY_URL = "https://data.brreg.no/enhetsregisteret/api/underenheter/{org_number}"
BRREG_MAIN_ENTITY_URL = "https://data.brreg.no/enhetsregisteret/api/enheter/{org_number}"
KARTVERKET_SEARCH_URL = "https://ws.geonorge.no/adresser/v1/sok"

CRITERION_FIELDS = tuple(f"karakter{i}" for i in range(1, 11))
REQUIRED_SOURCE_COLUMNS = ("tilsynsobjektid", "navn", "dato", "total_karakter")

ADDRESS_SOURCE_REGISTRY = "registry"
ADDRESS_SOURCE_FALLBACK = "fallback"
ADDRESS_SOURCES = (ADDRESS_SOURCE_REGISTRY, ADDRESS_SOURCE_FALLBACK)

UNKNOWN_RATING = -1
ERROR_BODY_PREVIEW_CHARS = 200

EXIT_SUCCESS = 0
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "service",
    "event",
    "status",
    "status_code",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
