"""Internal constants shared across the library."""

BASE_URL = "http://192.168.4.1"

ENDPOINT_VALUES = "/values"
ENDPOINT_INFO = "/info"
ENDPOINT_MODULES = "/modules"
ENDPOINT_FORM = "/"
ENDPOINT_ENABLE = "/enable"
ENDPOINT_DISABLE = "/disable"
ENDPOINT_FILL = "/fill"
ENDPOINT_FILES = "/files"
ENDPOINT_OTA = "/ota"

DEFAULT_POLL_INTERVAL: float = 5.0
DEFAULT_REQUEST_TIMEOUT: float = 6.0

PLACEHOLDER = "n/a"
LOAD_ERROR_TEXT = "Error loading data. Please try again later."
COMMAND_ERROR_TEXT = "An error occurred. Please try again."
INVALID_RESPONSE_TEXT = "Invalid response"

# Files the device allows the dashboard to delete from flash.
DELETABLE_FILES: frozenset[str] = frozenset({"HEATING.txt", "log.txt"})

TANK_PRODUCTS: frozenset[str] = frozenset({"HLT", "KTL", "CLT", "DST", "FBT"})

PRODUCT_NAMES: dict[str, str] = {
    "HLT": "Hot Liquor Tank",
    "KTL": "Kettle",
    "FBT": "Fermenter/Brite",
    "DST": "Distillery",
    "CO2": "CO2 Capture",
    "CHL": "Chiller",
    "CLT": "Cold Liquor Tank",
    "UBK": "Underback",
    "TST": "Test Unit",
    "TMP": "Temperature Monitor",
    "UNK": "Unknown",
}

# Ordered: first matching keyword in the description wins.
PRODUCT_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("ferment",), "FBT"),
    (("kettle",), "KTL"),
    (("hlt",), "HLT"),
    (("distill",), "DST"),
    (("clt",), "CLT"),
    (("chill",), "CHL"),
    (("underback", "ubk"), "UBK"),
    (("co2",), "CO2"),
    (("test",), "TST"),
    (("temp",), "TMP"),
)

PRODUCT_KEYS: tuple[str, ...] = ("product", "productCode", "product_code", "productType", "type", "code")

LABELS: dict[str, str] = {
    "localUrl": "Local URL",
    "name": "Name",
    "desc": "Description",
    "version": "Version",
    "manufacturer": "Manufacturer",
    "id": "ID",
    "wifi": "WiFi",
    "ws": "Web Sockets",
    "relay1": "Heating",
    "relay2": "Cooling",
    "ip": "IP Address",
    "min": "Min temperature",
    "max": "Max temperature",
    "board": "PCB Board version",
    "product": "Product",
    "tank": "Tank",
    "flashFree": "Flash free",
    "flashUsed": "Flash used",
    "flashTotal": "Flash total",
}
