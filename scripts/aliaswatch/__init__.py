"""aliaswatch: deactivate email aliases that show up in known data breaches.

Lists active aliases from AnonAddy, checks each address against the
Have I Been Pwned v3 API (one request at a time, honouring its rate limit)
and deactivates every alias that appears in a breach.
"""
