from fastapi import Response

# Freshness windows (seconds) per resource
MENUS_MAX_AGE = 300
MENU_DETAIL_MAX_AGE = 60
ORDERS_MAX_AGE = 10
ORDER_DETAIL_MAX_AGE = 5
RANK_MAX_AGE = 60


def set_cache_control(response: Response, max_age: int, private: bool = False) -> None:
    """Let shared caches serve the response for `max_age` seconds, stale while revalidating."""
    if private:
        response.headers["Cache-Control"] = f"private, max-age={max_age}"
    else:
        response.headers["Cache-Control"] = (
            f"public, max-age=0, s-maxage={max_age}, stale-while-revalidate={max_age}"
        )
