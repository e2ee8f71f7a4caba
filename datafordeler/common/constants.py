"""Application constants."""

USER_AGENT = "datafordeler-converter/1.0 (+dar-mat-csv)"

DAR_SOURCE = "dar"
MAT_SOURCE = "mat"
SOURCES = (DAR_SOURCE, MAT_SOURCE)

POSTNUMMER_LIST = "PostnummerList"
NAVNGIVEN_VEJ_KOMMUNEDEL_LIST = "NavngivenVejKommunedelList"
NAVNGIVEN_VEJ_LIST = "NavngivenVejList"
HUSNUMMER_LIST = "HusnummerList"
ADRESSEPUNKT_LIST = "AdressepunktList"
ADRESSE_LIST = "AdresseList"
EJERLAV_LIST = "EjerlavList"
JORDSTYKKE_LIST = "JordstykkeList"

STAGES = (
    "road-name",
    "post-code",
    "address-access",
    "address-specific",
)
LOOKUP_STRATEGIES = ("single_pass", "seek")

EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "level",
    "thread",
    "timestamp",
    "run_id",
    "stage",
    "source",
    "event",
    "status",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
