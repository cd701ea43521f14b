POSTS = [
    {"id": 1, "title": "Hello"},
    {"id": 2, "title": "Hot reload"},
]


def handler(request):
    return {"posts": POSTS}
