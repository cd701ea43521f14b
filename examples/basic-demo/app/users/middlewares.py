"""Replaces app/middlewares.py for everything under /users."""


def require_token(request):
    if request["headers"].get("authorization") != "Bearer demo":
        return {"error": "unauthorized"}
    return None


middlewares = [require_token]
