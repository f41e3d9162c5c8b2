from fastapi import Response

_INTEGER_HEADER = {"type": "string", "pattern": r"^\d+$"}
_STRING_HEADER = {"type": "string"}

ADDRESS_DETAIL_CACHE_CONTROL_VALUE = "private, max-age=300"
ADDRESS_LIST_CACHE_CONTROL_VALUE = "private, max-age=60"


def _documented(schema: dict, **descriptions: str) -> dict[str, dict]:
    return {
        name.replace("_", "-"): {"description": text, "schema": schema}
        for name, text in descriptions.items()
    }


RATE_LIMIT_SUCCESS_HEADERS = _documented(
    _INTEGER_HEADER,
    X_RateLimit_Limit="Requests allowed per caller in one address window",
    X_RateLimit_Remaining="Requests left for this caller in the current window",
    X_RateLimit_Reset="Unix epoch second at which the oldest counted request expires",
)

RATE_LIMIT_THROTTLED_HEADERS = {
    **RATE_LIMIT_SUCCESS_HEADERS,
    **_documented(_INTEGER_HEADER, Retry_After="Seconds to wait before retrying"),
}

ADDRESS_CACHE_HEADERS = {
    **RATE_LIMIT_SUCCESS_HEADERS,
    **_documented(
        _STRING_HEADER,
        ETag="Per-user tag of the address or address page",
        Cache_Control="Private caching policy for address reads",
    ),
}


def rate_limit_header_values(*, limit: int, remaining: int, reset_at_s: int) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(reset_at_s),
    }


def apply_rate_limit_headers(
    response: Response, *, limit: int, remaining: int, reset_at_s: int
) -> None:
    response.headers.update(
        rate_limit_header_values(limit=limit, remaining=remaining, reset_at_s=reset_at_s)
    )


def apply_address_cache_headers(response: Response, *, etag: str, cache_control: str) -> None:
    response.headers["ETag"] = etag
    response.headers["Cache-Control"] = cache_control
