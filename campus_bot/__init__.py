"""Campus guide chat bot: grounded answers, web search fallback and an editable Bot DNA."""
