import re
import uuid
from dataclasses import dataclass, field

from starlette.requests import Request

SESSION_ID_HEADER = "x-session-id"
REQUEST_ID_HEADER = "x-request-id"
# Width of the change_logs.session_id and request_id columns.
MAX_ID_LENGTH = 64

_BOT_PATTERN = re.compile(r"bot|crawler|spider|curl/|wget/|python-requests|python-httpx", re.IGNORECASE)
_TABLET_PATTERN = re.compile(r"ipad|tablet|kindle|silk|playbook|android(?!.*mobile)", re.IGNORECASE)
_MOBILE_PATTERN = re.compile(r"mobi|iphone|ipod|android.*mobile|windows phone|blackberry", re.IGNORECASE)

# Order matters: Edge and Opera also advertise Chrome, Chrome advertises Safari.
_BROWSER_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"Edg(e|A|iOS)?/", re.IGNORECASE), "Edge"),
    (re.compile(r"OPR/|Opera", re.IGNORECASE), "Opera"),
    (re.compile(r"SamsungBrowser/", re.IGNORECASE), "Samsung Internet"),
    (re.compile(r"Firefox/|FxiOS/", re.IGNORECASE), "Firefox"),
    (re.compile(r"Chrome/|CriOS/", re.IGNORECASE), "Chrome"),
    (re.compile(r"Safari/", re.IGNORECASE), "Safari"),
]

_OS_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"Windows NT", re.IGNORECASE), "Windows"),
    (re.compile(r"iPhone|iPad|iPod", re.IGNORECASE), "iOS"),
    (re.compile(r"Android", re.IGNORECASE), "Android"),
    (re.compile(r"CrOS", re.IGNORECASE), "ChromeOS"),
    (re.compile(r"Mac OS X|Macintosh", re.IGNORECASE), "macOS"),
    (re.compile(r"Linux", re.IGNORECASE), "Linux"),
]


@dataclass(frozen=True)
class DeviceInfo:
    device_type: str = "unknown"
    browser_name: str | None = None
    os_name: str | None = None


def parse_user_agent(user_agent: str | None) -> DeviceInfo:
    """Classify a User-Agent header into device type, browser and OS."""
    if not user_agent:
        return DeviceInfo()

    if _BOT_PATTERN.search(user_agent):
        device_type = "bot"
    elif _TABLET_PATTERN.search(user_agent):
        device_type = "tablet"
    elif _MOBILE_PATTERN.search(user_agent):
        device_type = "mobile"
    else:
        device_type = "desktop"

    browser_name = next((name for pattern, name in _BROWSER_PATTERNS if pattern.search(user_agent)), None)
    os_name = next((name for pattern, name in _OS_PATTERNS if pattern.search(user_agent)), None)
    return DeviceInfo(device_type=device_type, browser_name=browser_name, os_name=os_name)


def get_client_ip(request: Request) -> str | None:
    """Client address, preferring the first proxy hop over the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop
    for header in ("cf-connecting-ip", "x-real-ip"):
        value = (request.headers.get(header) or "").strip()
        if value:
            return value
    return request.client.host if request.client else None


def _header_id(request: Request, header: str) -> str:
    """A caller-supplied id that fits the audit columns, else a fresh UUID."""
    value = (request.headers.get(header) or "").strip()
    if value and len(value) <= MAX_ID_LENGTH:
        return value
    return str(uuid.uuid4())


def _clip(value: str | None, length: int) -> str | None:
    return value[:length] if value else value


@dataclass
class RequestContext:
    """Per-request metadata attached to privileged audit rows."""

    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    ip_address: str | None = None
    user_agent: str | None = None
    geo_country: str | None = None
    geo_city: str | None = None
    device: DeviceInfo = field(default_factory=DeviceInfo)

    @classmethod
    def from_request(cls, request: Request) -> "RequestContext":
        headers = request.headers
        user_agent = _clip(headers.get("user-agent"), 1000)
        return cls(
            session_id=_header_id(request, SESSION_ID_HEADER),
            request_id=_header_id(request, REQUEST_ID_HEADER),
            ip_address=_clip(get_client_ip(request), 64),
            user_agent=user_agent,
            geo_country=_clip(headers.get("cf-ipcountry") or headers.get("x-vercel-ip-country"), 64),
            geo_city=_clip(headers.get("x-vercel-ip-city"), 128),
            device=parse_user_agent(user_agent),
        )

    def as_audit_fields(self) -> dict:
        return {
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "request_id": self.request_id,
            "session_id": self.session_id,
            "geo_country": self.geo_country,
            "geo_city": self.geo_city,
            "device_type": self.device.device_type,
            "browser_name": self.device.browser_name,
            "os_name": self.device.os_name,
        }
