"""Git data operations: publishing commits to a branch and opening PRs."""
