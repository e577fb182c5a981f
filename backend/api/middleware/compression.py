"""
Response compression for JSON payloads (Flask-Compress).

Responses of at least COMPRESS_MIN_SIZE bytes (1 KB) are gzip/deflate
encoded at COMPRESS_LEVEL 6 when the client sends Accept-Encoding.
A request carrying an X-No-Compression header always gets the plain body.
"""

from flask import Flask, request
from flask_compress import Compress

NO_COMPRESSION_HEADER = 'X-No-Compression'


def setup_compression_middleware(app: Flask) -> Compress:
    # Hooked manually below so the opt-out header is checked first
    app.config['COMPRESS_REGISTER'] = False
    compress = Compress(app)

    @app.after_request
    def compress_response(response):
        if request.headers.get(NO_COMPRESSION_HEADER):
            return response
        return compress.after_request(response)

    return compress
