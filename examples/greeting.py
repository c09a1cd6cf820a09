#
# An application factory for the watchserve command line runner. The
# response body is read from the watched file:
#
#   $ echo "Hello" > greeting.txt
#   $ watchserve greeting.txt greeting:build
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.


def build(path):
    with open(path, 'rb') as f:
        body = f.read()

    def app(environ, start_response):
        start_response('200 OK', [
            ('Content-Type', 'text/plain'),
            ('Content-Length', str(len(body))),
        ])
        return [body]

    return app
