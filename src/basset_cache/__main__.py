from __future__ import annotations

from basset_cache.application.app import BassetConsole

if __name__ == "__main__":
    raise SystemExit(BassetConsole.run_from_env())
