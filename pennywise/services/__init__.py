"""Domain services for accounts, ledger, budgets, goals, transfers and bank linking."""
