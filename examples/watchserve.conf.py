# Sample watchserve configuration file.
#
#   $ watchserve -c watchserve.conf.py greeting.txt greeting:build

bind = '127.0.0.1:8000'
backlog = 2048

reload_engine = 'auto'
reload_interval = 1.0

loglevel = 'info'
errorlog = '-'
accesslog = '-'
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s v%(v)s'


def when_ready(server):
    server.log.info("Server is ready, watching %s", server.path)


def on_reload(server):
    server.log.info("Handler rebuilt, version %d", server.handler_ref.version)
