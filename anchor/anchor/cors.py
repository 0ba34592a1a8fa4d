from corsheaders.signals import check_request_enabled


def cors_allow_origins_for_auth_requests(sender, request, **_kwargs):
    return request.path.startswith("/auth")


check_request_enabled.connect(cors_allow_origins_for_auth_requests)
