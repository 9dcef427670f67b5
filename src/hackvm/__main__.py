from .translator import main

raise SystemExit(main())
