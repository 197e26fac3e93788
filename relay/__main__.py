"""Allow running the relay with: python -m relay"""

from relay.service import main

if __name__ == "__main__":
    main()
