import sys

from biblioteca.presentation.cli import main

sys.exit(main())
