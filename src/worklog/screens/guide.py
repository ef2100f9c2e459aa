"""Guide screen — built-in key reference."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.screen import Screen
from textual.widgets import Footer, Markdown

GUIDE_TEXT = """\
# worklog

Every entry is one finished task: when it started, what it was and how
long it took. Entries are numbered from 0 in the order they were logged.
Deleting an entry renumbers everything after it, so "entry 3" always
means the fourth line on screen.

## Keys

### Log
| Key | Action |
|-----|--------|
| `↑` / `k` | Select previous entry |
| `↓` / `j` | Select next entry |
| `Home` / `g` | First entry |
| `End` / `G` | Last entry |
| `a` | Add an entry |
| `d` / `x` / `Del` | Delete selected entry (asks first) |
| `s` | Toggle summary |
| `t` | Cycle theme |
| `?` | This guide |
| `q` / `Ctrl+Q` | Quit |

### Confirm delete
| Key | Action |
|-----|--------|
| `y` / `Enter` | Delete |
| `n` / `Esc` | Keep the entry |

### Summary
| Key | Action |
|-----|--------|
| `c` | Group by day, week, task or total |
| `s` or any movement key | Back to the log |

## Durations

`5400`, `1:30`, `1:30:00`, `1h30m`, `90m` and `45s` are all accepted.

## File Locations

| What | Where |
|------|-------|
| Config | `~/.worklog/config.yaml` |
| Log (default) | `~/.worklog/worklog.csv` |
| Diagnostics | `~/.worklog/worklog.log` |

Set `WORKLOG_HOME` to move all of them.

## Command Line

```
worklog add "write report" -d 1h30m
worklog list
worklog delete 3
worklog summary --by week
worklog export ~/hours.csv
worklog repair
worklog start "write report"
worklog pause
worklog resume
worklog stop
```
"""


class GuideScreen(Screen):
    """Key reference reachable from the log screen."""

    BINDINGS = [
        Binding("escape", "go_back", "Back", show=True),
        Binding("q", "go_back", "Back", show=False),
    ]

    def compose(self) -> ComposeResult:
        with VerticalScroll(id="guide-scroll"):
            yield Markdown(GUIDE_TEXT, id="guide-content")
        yield Footer()

    def action_go_back(self) -> None:
        self.app.pop_screen()
