from examtrack.cli.main import main

raise SystemExit(main())
