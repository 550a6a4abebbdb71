import sys

from file_inventory.update_database import main

sys.exit(main())
