"""watchrun - incremental test rerunning for file-watching test runners."""
