"""Stock sync: keep catalog stock in line with a remote CSV feed."""
