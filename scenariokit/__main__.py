"""Allow ``python -m scenariokit``."""

from scenariokit.cli import main

if __name__ == "__main__":
    main()
