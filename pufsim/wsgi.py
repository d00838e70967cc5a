#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
	WSGI entry point for the PUF provisioning simulator.
	The WSGI server imports this file and calls `application`,
	which must reference the Flask app returned by create_app().
"""


# Import the Flask app factory
from pufsim.server import create_app

# WSGI servers look up this symbol
application = create_app()
