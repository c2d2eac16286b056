# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Juicebox Contributors

import sys

from juicebox_cli.rewards_cmd import main

if __name__ == "__main__":
    argv = sys.argv[1:]
    if not argv or argv[0] != "rewards":
        print("usage: python -m juicebox_cli rewards {config,replay} ...", file=sys.stderr)
        sys.exit(2)
    main(argv[1:])
