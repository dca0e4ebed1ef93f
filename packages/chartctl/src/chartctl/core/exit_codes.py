from __future__ import annotations

OK = 0
ERR_USAGE = 2
ERR_CONFIG = 10
ERR_PREREQ = 11
ERR_VALIDATION = 12
ERR_RELEASE = 13
ERR_GITHUB = 14
ERR_ARTIFACT = 15
ERR_INTERNAL = 99
