# SPDX-License-Identifier: GPL-3.0-or-later
"""
monumentexport - Export photos, videos and metadata from a Monument device database.

Copyright (C) 2024 monumentexport Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

__version__ = "0.11.0"
__license__ = "GPL-3.0-or-later"
