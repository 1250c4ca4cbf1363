#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: usaccidents_insights/pagination.py
# Purpose: Page metadata for the accident listing.
#
# Description of code and how it works:
# - build_pagination() derives total_page/next from a total and a
#   zero-indexed page; it never touches the database.
#
# Author: Tim Canady
# Created: 2025-11-03
#
# Version: 1.0.0
# Last Modified: 2025-11-03 by Tim Canady
#
# Revision History:
# - 1.0.0 (2025-11-03): Initial version.
###################################################################
#
from __future__ import annotations

import math
from typing import Any, Dict, Optional

DEFAULT_LIMIT = 100


def _as_number(value: Any) -> Optional[float]:
    # None, NaN, 0 and junk all count as "not given"
    if value is None or isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(n) or math.isinf(n) or n == 0:
        return None
    return n


def build_pagination(total: int, page: Any, limit: Any, default_limit: int = DEFAULT_LIMIT) -> Dict[str, Any]:
    """Metadata envelope for a zero-indexed page.

    page is clamped to >= 0, a missing limit becomes default_limit (100 unless
    the caller says otherwise) and any limit is clamped to >= 1.
    """
    page_n = _as_number(page)
    limit_n = _as_number(limit)
    safe_page = max(0, int(page_n)) if page_n is not None else 0
    safe_limit = max(1, int(limit_n)) if limit_n is not None else default_limit

    total_page = math.ceil(total / safe_limit)
    return {
        "total": total,
        "total_page": total_page,
        "next": safe_page < total_page - 1,
        "page": safe_page,
        "limit": safe_limit,
    }
