# modpack_cache/__main__.py
from modpack_cache.cli import main

if __name__ == "__main__":
    main()
