#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: main.py
# Purpose: Local entry point (uvicorn) for the dashboard API.
#
# Description of code and how it works:
# - Re-exports usaccidents_insights.main:app and serves it with uvicorn.
# - HOST/PORT from env (defaults 0.0.0.0:3001).
#
# Author: Tim Canady
# Created: 2025-09-28
#
# Version: 1.0.0
# Last Modified: 2025-11-03 by Tim Canady
#
# Revision History:
# - 1.0.0 (2025-11-03): Thin uvicorn launcher for the dashboard API.
###################################################################
#
import os

import uvicorn

from usaccidents_insights.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "3001")))
