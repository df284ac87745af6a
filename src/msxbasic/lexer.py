"""
Lexer for MSX-BASIC statements

Tokenizes one logical BASIC line (or a fragment of one) into a stream of
tokens.

Features:
- Single-pass tokenization
- Case-insensitive keywords, identifiers normalized to upper case
- `$`-suffixed string identifiers and `FNname` user-function calls
- Doubled-quote escapes in string literals
- `&H` / `&O` / `&B` radix literals
"""

from typing import List

from .token_types import TT, Tok


class LexError(Exception):
    """Raised for characters that cannot start any token."""


class Lexer:
    """
    MSX-BASIC lexer.

    Works on a single line: a BASIC statement never spans physical lines,
    so there is no newline or indentation handling.
    """

    # Reserved words; each spelling is also its token type's name
    KEYWORDS = {
        word: TT[word]
        for word in (
            'PRINT INPUT LET IF THEN ELSE GOTO GOSUB RETURN FOR TO STEP NEXT '
            'ON DIM DATA READ RESTORE DEF FN CLEAR CLS END STOP REM '
            'SAVEF LOADF CLOAD SAVE NOT AND OR XOR EQV IMP MOD'
        ).split()
    }

    # Operator mapping: longest matches first to handle prefixes correctly
    OPERATORS = [
        # Two-character operators
        ('<>', TT.NEQ),
        ('><', TT.NEQ),
        ('<=', TT.LTE),
        ('=<', TT.LTE),
        ('>=', TT.GTE),
        ('=>', TT.GTE),

        # Single-character operators
        ('+', TT.PLUS),
        ('-', TT.MINUS),
        ('*', TT.STAR),
        ('/', TT.SLASH),
        ('\\', TT.BACKSLASH),
        ('^', TT.CARET),
        ('%', TT.PERCENT),
        ('=', TT.EQ),
        ('<', TT.LT),
        ('>', TT.GT),
        ('(', TT.LPAR),
        (')', TT.RPAR),
        (',', TT.COMMA),
        (';', TT.SEMI),
        (':', TT.COLON),
        ('?', TT.QMARK),
    ]

    RADIX_DIGITS = {
        'H': (16, '0123456789ABCDEF'),
        'O': (8, '01234567'),
        'B': (2, '01'),
    }

    def __init__(self, source: str, emit_comments: bool = False):
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Tok] = []
        self.emit_comments = emit_comments
        self._start_column = 1

    def tokenize(self) -> List[Tok]:
        """Scan the whole line and return its tokens, ending with EOF."""
        while self.pos < len(self.source):
            self.scan_token()

        self._start_column = self.column
        self.emit(TT.EOF, None)
        return self.tokens

    def scan_token(self):
        """Consume whitespace or one token starting at the current position."""
        if self.peek() in (' ', '\t', '\r', '\n'):
            self.advance()
            return

        self._start_column = self.column

        # Apostrophe comments run to end of line
        if self.peek() == "'":
            self.scan_comment()
            return

        if self.peek() == '"':
            self.scan_string()
            return

        if self.peek().isdigit() or (self.peek() == '.' and self.peek(1).isdigit()):
            self.scan_number()
            return

        if self.peek() == '&':
            self.scan_radix()
            return

        if self.peek().isalpha():
            self.scan_identifier()
            return

        self.scan_operator()

    def scan_comment(self):
        """Consume the rest of the line as a comment"""
        text = self.advance(len(self.source) - self.pos)
        if self.emit_comments:
            self.emit(TT.COMMENT, text)

    def scan_string(self):
        """
        Scan a double-quoted string literal.

        `""` inside the literal stands for one embedded quote. A literal left
        open at end of line is closed implicitly, as the real machine does.
        """
        self.advance()  # opening quote
        chars = []

        while self.pos < len(self.source):
            ch = self.advance()
            if ch == '"':
                if self.peek() == '"':
                    self.advance()
                    chars.append('"')
                    continue
                break
            chars.append(ch)

        self.emit(TT.STRING, ''.join(chars))

    def scan_number(self):
        """Decimal literal with optional fraction, exponent and type suffix."""
        value = ''

        # Integer part
        while self.peek().isdigit():
            value += self.advance()

        # Decimal part
        if self.peek() == '.':
            value += self.advance()
            while self.peek().isdigit():
                value += self.advance()

        # Exponent (E for single, D for double precision)
        if self.peek().upper() in ('E', 'D'):
            sign_len = 1 if self.peek(1) in ('+', '-') else 0
            if self.peek(1 + sign_len).isdigit():
                self.advance()
                value += 'E'
                if sign_len:
                    value += self.advance()
                while self.peek().isdigit():
                    value += self.advance()

        # Type suffixes carry no meaning here; every number is a double
        if self.peek() in ('!', '#'):
            self.advance()

        self.emit(TT.NUMBER, value)

    def scan_radix(self):
        """Scan &H / &O / &B literal (bare & means octal)"""
        self.advance()  # &
        prefix = self.peek().upper()

        if prefix in self.RADIX_DIGITS:
            self.advance()
        elif prefix.isdigit():
            prefix = 'O'
        else:
            raise LexError(f"Unexpected character '&' at line {self.line}, col {self._start_column}")

        _, valid = self.RADIX_DIGITS[prefix]
        digits = ''
        while self.peek().upper() in valid:
            digits += self.advance().upper()

        if not digits:
            raise LexError(f"Missing digits after &{prefix} at line {self.line}, col {self._start_column}")

        self.emit(TT.RADIX, f"&{prefix}{digits}")

    def scan_identifier(self):
        """Names, reserved words, REM, and FN-prefixed function names."""
        value = ''

        while self.peek().isalnum():
            value += self.advance()

        if self.peek() == '$':
            value += self.advance()

        value = value.upper()

        if value == 'REM':
            self.scan_comment()
            return

        token_type = self.KEYWORDS.get(value)
        if token_type is not None:
            self.emit(token_type, value)
            return

        # FNX(...) is the keyword FN glued to the function name
        if value.startswith('FN') and len(value) > 2 and value[2].isalpha():
            self.emit(TT.FN, 'FN')
            self._start_column += 2
            self.emit(TT.IDENT, value[2:])
            return

        self.emit(TT.IDENT, value)

    def scan_operator(self):
        for op_str, op_type in self.OPERATORS:
            if self.source.startswith(op_str, self.pos):
                self.advance(len(op_str))
                self.emit(op_type, op_str)
                return

        ch = self.peek()
        raise LexError(f"Unexpected character '{ch}' at line {self.line}, col {self.column}")

    def peek(self, offset: int = 0) -> str:
        """Character `offset` places ahead, or NUL past the end of the line."""
        idx = self.pos + offset
        return self.source[idx] if idx < len(self.source) else '\0'

    def advance(self, n: int = 1) -> str:
        chunk = self.source[self.pos:self.pos + n]
        self.pos += n
        self.column += n
        return chunk

    def emit(self, token_type: TT, value):
        self.tokens.append(Tok(token_type, value, self.line, self._start_column))


def tokenize(source: str, emit_comments: bool = False) -> List[Tok]:
    return Lexer(source, emit_comments=emit_comments).tokenize()
