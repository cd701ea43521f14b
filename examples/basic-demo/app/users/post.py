def post(request):
    return {"created": request["body"]}
