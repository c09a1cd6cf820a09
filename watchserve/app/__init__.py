# -*- coding: utf-8 -
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.
