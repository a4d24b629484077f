"""Run the flux-sync command line tool."""

from flux_sync.tool.flux_sync import main

if __name__ == "__main__":
    main()
