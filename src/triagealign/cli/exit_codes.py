"""Exit statuses returned by the triagealign commands.

- 0: success, and also a run invoked without its required inputs (usage shown)
- 1: configuration, tool or pipeline failure
- 2: invalid option values rejected by click
- 130/143: interrupted by SIGINT/SIGTERM (128 + signal number)
"""

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_SIGINT = 130
EXIT_SIGTERM = 143
