# SPDX-License-Identifier: MIT
from beacon.cli import main

if __name__ == "__main__":
    main()
