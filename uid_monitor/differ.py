class IdentifierDiffer:
    """
    Remembers the previously observed identifier list and decides whether
    a new snapshot announces a newly registered identifier.

    Alert policy:
      - the first list after (re)subscription never alerts
      - a same-length or shorter list never alerts, even if members changed
      - several new members in one snapshot collapse into a single alert
        naming the last of them
    """

    def __init__(self) -> None:
        self.previous: list[str] = []

    def diff(self, current: list[str]) -> str | None:
        """
        Return the identifier to surface, or None.
        Replaces the remembered list with `current` as a side effect.
        """
        previous = self.previous
        self.previous = list(current)

        if not previous or len(current) <= len(previous):
            return None

        seen = set(previous)
        new_ones = [uid for uid in current if uid not in seen]
        if not new_ones:
            return None
        return new_ones[-1]

    def reset(self) -> None:
        self.previous = []
