from likelocker.cli import main

raise SystemExit(main())
