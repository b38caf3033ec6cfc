from ubertmux.cli import main

raise SystemExit(main())
