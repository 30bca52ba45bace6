def split_rtmp_url(rtmp_url: str) -> tuple[str, str]:
    """Split an RTMP url into (server, application).

    The scheme is dropped, the first path segment is the server and everything
    after it is the application, e.g. ``rtmp://a.rtmp.youtube.com/live2`` gives
    ``("a.rtmp.youtube.com", "live2")``.
    """
    url = rtmp_url.strip()
    for scheme in ("rtmps://", "rtmp://"):
        if url.lower().startswith(scheme):
            url = url[len(scheme):]
            break

    server, _, application = url.strip("/").partition("/")
    return server, application.strip("/")
