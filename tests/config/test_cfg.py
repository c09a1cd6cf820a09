bind = "unix:/tmp/bar/baz"
reload_interval = 0.25
loglevel = "warning"


def on_reload(server):
    return "reloaded"
