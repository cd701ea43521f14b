"""Runs before every route in the app."""


def request_log(request):
    print(f"-> {request['method']} {request['path']}")


middlewares = [request_log]
