#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: usaccidents_insights/errors.py
# Purpose: Typed error kinds raised by the query layer.
#
# Description of code and how it works:
# - Each error carries the HTTP status the API boundary answers with.
#
# Author: Tim Canady
# Created: 2025-11-03
#
# Version: 1.0.0
# Last Modified: 2025-11-03 by Tim Canady
#
# Revision History:
# - 1.0.0 (2025-11-03): Initial error taxonomy.
###################################################################
#


class AccidentsError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidFilter(AccidentsError):
    status_code = 400


class NotFound(AccidentsError):
    status_code = 404


class UpstreamQueryFailure(AccidentsError):
    """The relational store failed; never retried."""
    status_code = 500
