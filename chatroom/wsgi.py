# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from chatroom.app import create_wsgi_app

application = create_wsgi_app()
