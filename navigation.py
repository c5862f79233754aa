import curses

# Action names understood by NavigationController.dispatch
UP = "up"
DOWN = "down"
LEFT = "left"
RIGHT = "right"
PAGE_UP = "page_up"
PAGE_DOWN = "page_down"
PAGE_LEFT = "page_left"
PAGE_RIGHT = "page_right"
HOME = "home"
END = "end"
FIRST_COLUMN = "first_column"
LAST_COLUMN = "last_column"

KEY_ACTIONS = {
    curses.KEY_UP: UP,
    curses.KEY_DOWN: DOWN,
    curses.KEY_LEFT: LEFT,
    curses.KEY_RIGHT: RIGHT,
    curses.KEY_PPAGE: PAGE_UP,
    curses.KEY_NPAGE: PAGE_DOWN,
    curses.KEY_HOME: HOME,
    curses.KEY_END: END,
    ord("k"): UP,
    ord("j"): DOWN,
    ord("h"): LEFT,
    ord("l"): RIGHT,
}

# Ctrl-modified keys have no fixed KEY_* constant; curses reports them by name
KEYNAME_ACTIONS = {
    b"kLFT5": PAGE_LEFT,
    b"kRIT5": PAGE_RIGHT,
    b"kHOM5": FIRST_COLUMN,
    b"kEND5": LAST_COLUMN,
}


class NavigationController:
    def __init__(self, grid):
        self.grid = grid
        self._moves = {
            UP: grid.move_up,
            DOWN: grid.move_down,
            LEFT: grid.move_left,
            RIGHT: grid.move_right,
            PAGE_UP: grid.page_up,
            PAGE_DOWN: grid.page_down,
            PAGE_LEFT: grid.page_left,
            PAGE_RIGHT: grid.page_right,
            HOME: grid.go_home,
            END: grid.go_end,
            FIRST_COLUMN: grid.first_column,
            LAST_COLUMN: grid.last_column,
        }

    def dispatch(self, action: str) -> bool:
        move = self._moves.get(action)
        if move is None:
            return False
        move()
        return True

    def action_for_key(self, key):
        if key in KEY_ACTIONS:
            return KEY_ACTIONS[key]
        if not isinstance(key, int) or key < 0:
            return None
        try:
            name = curses.keyname(key)
        except (curses.error, ValueError):
            return None
        return KEYNAME_ACTIONS.get(name)

    def handle_key(self, key) -> bool:
        """Apply the move bound to ``key``; False when the key is not a move."""
        action = self.action_for_key(key)
        if action is None:
            return False
        return self.dispatch(action)
