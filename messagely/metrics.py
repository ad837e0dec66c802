from prometheus_client import Counter

registrations_total = Counter(
    'messagely_registrations_total', 'Total successful user registrations'
)
login_attempts_total = Counter(
    'messagely_login_attempts_total', 'Total login attempts', ['outcome']
)
messages_sent_total = Counter(
    'messagely_messages_sent_total', 'Total messages created'
)
messages_read_total = Counter(
    'messagely_messages_read_total', 'Total messages transitioned to read'
)
