# -*- coding: utf-8 -
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

from watchserve.app.fileapp import run

if __name__ == "__main__":
    # argparse would otherwise report "__main__.py" as the program name
    run(prog="watchserve")
