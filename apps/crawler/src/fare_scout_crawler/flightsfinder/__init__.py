"""flightsfinder.com ``/portal/sky`` search: client, poller and markup parser."""
