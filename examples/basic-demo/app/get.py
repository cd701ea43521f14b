def handler(request):
    return {"message": "Welcome to burrow"}
