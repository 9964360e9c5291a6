"""Navigation targets handed to the presentation layer."""

HOME = "/"
SIGN_IN = "/auth?mode=login"
MY_PAGE = "/me"


def restaurant_detail(restaurant_id: int) -> str:
    return f"/restaurants/{restaurant_id}"
