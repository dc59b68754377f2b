import sys

from persona_bundles.cli import main

sys.exit(main())
