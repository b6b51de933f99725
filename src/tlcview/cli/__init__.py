"""
Command-line interface for tlcview.

Built with click:

- Starting the GUI
- Starting the reference engine
- Checking and managing background engines

Examples
--------
Starting the GUI together with a local reference engine:
```bash
$ tlcview gui --start-engine
```

Starting the reference engine on its own:
```bash
$ tlcview engine --log-level DEBUG
```

CLI Tree
--------

```
$ tlcview --tree
cli
└── engine
└── gui
└── kill
└── list
└── ping
```
"""

from .base import cli, tree_option

__all__ = ["cli", "tree_option"]
