from jakamo_connector.main import main

raise SystemExit(main())
