#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: usaccidents_insights/__init__.py
# Purpose: Package init
#
# Description of code and how it works:
#
# Author: Tim Canady
# Created: 2025-09-28
#
# Version: 1.0.0
# Last Modified: 2025-11-03 by Tim Canady
#
# Revision History:
# - 1.0.0 (2025-11-03): Dashboard query layer modules.
# - 0.6.0 (2025-10-04): Ensure `get_db` generator and explicit exports; robust env loading.
###################################################################
#
__version__ = "1.1.0"

__all__ = ['cache', 'config', 'database', 'errors', 'filters', 'logging_config', 'models',
           'pagination', 'schemas', 'service']
