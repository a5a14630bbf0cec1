AGAIN = 'again'
GOOD = 'good'
EASY = 'easy'
GRADES = (AGAIN, GOOD, EASY)


class FlashcardReviewEngine:
    """
    Review a fixed deck one card at a time.

    "Again" moves the current card one slot later so it comes back after the
    next card; "Good" and "Easy" both move on. The index never runs past the
    last card.
    """

    def __init__(self, cards=None):
        self.deck = [dict(c) for c in (cards or [])]
        self.current_index = 0
        self.back_visible = False

    def __len__(self):
        return len(self.deck)

    @property
    def current(self):
        if not self.deck:
            return None
        return self.deck[self.current_index]

    def reveal(self):
        if self.deck:
            self.back_visible = not self.back_visible

    def grade(self, outcome: str):
        if outcome not in GRADES:
            raise ValueError(f'Unknown grade: {outcome!r}')

        self.back_visible = False
        if len(self.deck) <= 1:
            return

        if outcome == AGAIN:
            card = self.deck.pop(self.current_index)
            self.deck.insert(self.current_index + 1, card)
        elif self.current_index + 1 < len(self.deck):
            self.current_index += 1

    def restart(self):
        self.current_index = 0
        self.back_visible = False

    def to_dict(self):
        return {
            'deck': self.deck,
            'currentIndex': self.current_index,
            'backVisible': self.back_visible,
            'position': f'{self.current_index + 1} / {len(self.deck)}' if self.deck else '0 / 0',
        }
