from billing_sync.cli import main

raise SystemExit(main())
