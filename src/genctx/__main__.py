from genctx.cli import main

raise SystemExit(main())
