"""
Recursive Descent Parser for MSX-BASIC

Structure:
- Lexer: Token stream for one statement (see lexer.py)
- Parser: Recursive descent, one parse_* method per precedence level
- AST: lark Tree/Token nodes, walked by the evaluator and dispatcher

A source line is compiled into a flat list of instructions. Each
`:`-separated statement is parsed on its own so that a malformed statement
only fails when control actually reaches it. IF is flattened into a
conditional jump over its THEN block plus an unconditional skip over its
ELSE block, so statements inside either branch resume like any other
instruction on the line.
"""

import logging
from typing import Optional, List

from lark import Tree, Token

from .lexer import LexError, tokenize
from .token_types import TT, Tok, BUILTIN_FUNCTIONS
from .utils import starts_with_word, strip_inline_comment, split_statements

log = logging.getLogger(__name__)

# ============================================================================
# Parser
# ============================================================================

class ParseError(Exception):
    """Parse error with position info"""
    def __init__(self, message: str, token: Optional[Tok] = None):
        self.message = message
        self.token = token
        super().__init__(
            f"{message} at line {token.line}, col {token.column}" if token else message
        )

class Parser:
    """
    Recursive descent parser for MSX-BASIC statements.

    Expression precedence (lowest to highest):
    1. IMP
    2. EQV
    3. XOR
    4. OR
    5. AND
    6. NOT
    7. relational (=, <>, <, <=, >, >=)
    8. add (+, -)
    9. MOD (also spelled %)
    10. integer division (\\)
    11. mul (*, /)
    12. unary (-, +)
    13. power (^), left associative
    14. primary (literals, variables, array elements, calls, parens)
    """

    def __init__(self, tokens: List[Tok], source: str = ""):
        self.tokens = tokens
        self.source = source
        self.pos = 0
        self.current = tokens[0] if tokens else Tok(TT.EOF, None, 0, 0)

    # ========================================================================
    # Token Navigation
    # ========================================================================

    def peek(self, offset: int = 0) -> Tok:
        """Look ahead at token"""
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return Tok(TT.EOF, None, 0, 0)

    def advance(self) -> Tok:
        """Consume current token and move to next"""
        prev = self.current
        self.pos += 1
        if self.pos < len(self.tokens):
            self.current = self.tokens[self.pos]
        else:
            self.current = Tok(TT.EOF, None, 0, 0)
        return prev

    def check(self, *types: TT) -> bool:
        """Check if current token matches any of the given types"""
        return self.current.type in types

    def match(self, *types: TT) -> bool:
        """Check and consume if current token matches"""
        if self.check(*types):
            self.advance()
            return True
        return False

    def expect(self, token_type: TT, message: Optional[str] = None) -> Tok:
        """Consume token of expected type or raise error"""
        if not self.check(token_type):
            msg = message or f"Expected {token_type.name}, got {self.current.type.name}"
            raise ParseError(msg, self.current)
        return self.advance()

    def at_statement_end(self) -> bool:
        return self.check(TT.EOF, TT.COLON, TT.ELSE)

    # ========================================================================
    # Statements
    # ========================================================================

    def parse_statement(self) -> List[Tree]:
        """
        Parse one statement into its instruction list.

        Most statements yield a single instruction; IF yields its jump plus
        the flattened branch bodies.
        """
        tok = self.current

        if tok.type in (TT.PRINT, TT.QMARK):
            return [self.parse_print_stmt()]
        if tok.type == TT.INPUT:
            return [self.parse_input_stmt()]
        if tok.type == TT.LET:
            self.advance()
            return [self.parse_assignment()]
        if tok.type == TT.IDENT:
            return [self.parse_assignment()]
        if tok.type == TT.IF:
            return self.parse_if_stmt()
        if tok.type in (TT.GOTO, TT.GOSUB):
            self.advance()
            label = 'goto' if tok.type == TT.GOTO else 'gosub'
            return [Tree(label, [self.parse_line_number()])]
        if tok.type == TT.RETURN:
            self.advance()
            children = [] if self.at_statement_end() else [self.parse_line_number()]
            return [Tree('return', children)]
        if tok.type == TT.FOR:
            return [self.parse_for_stmt()]
        if tok.type == TT.NEXT:
            return [self.parse_next_stmt()]
        if tok.type == TT.ON:
            return [self.parse_on_stmt()]
        if tok.type == TT.DIM:
            return [self.parse_dim_stmt()]
        if tok.type == TT.READ:
            self.advance()
            return [Tree('read', self.parse_lvalue_list())]
        if tok.type == TT.RESTORE:
            self.advance()
            children = [] if self.at_statement_end() else [self.parse_line_number()]
            return [Tree('restore', children)]
        if tok.type == TT.DEF:
            return [self.parse_deffn_stmt()]
        if tok.type == TT.CLEAR:
            self.advance()
            # CLEAR n[,m] reserves memory on the real machine; the sizes are accepted and ignored
            while not self.at_statement_end():
                self.advance()
            return [Tree('clear', [])]
        if tok.type in (TT.CLS, TT.END, TT.STOP):
            self.advance()
            return [Tree(tok.type.name.lower(), [])]
        if tok.type in (TT.SAVEF, TT.LOADF):
            return [self.parse_snapshot_stmt()]
        if tok.type in (TT.CLOAD, TT.SAVE):
            return [self.parse_program_file_stmt()]

        raise ParseError(f"Unexpected {tok.type.name}", tok)

    def parse_statement_sequence(self) -> List[Tree]:
        """Parse `stmt : stmt ...` up to ELSE or end of line (IF bodies)"""
        out: List[Tree] = []

        while not self.check(TT.EOF, TT.ELSE):
            if self.match(TT.COLON):
                continue
            out.extend(self.parse_statement())
            if not self.check(TT.COLON, TT.EOF, TT.ELSE):
                raise ParseError("Expected end of statement", self.current)

        return out

    def parse_print_stmt(self) -> Tree:
        """PRINT [item] [; | ,] ... (items may also sit side by side)"""
        self.advance()
        items: List[Tree | Token] = []

        while not self.at_statement_end():
            if self.check(TT.SEMI, TT.COMMA):
                sep = self.advance()
                items.append(Token(sep.type.name, sep.value))
                continue
            items.append(self.parse_expr())

        return Tree('print', items)

    def parse_input_stmt(self) -> Tree:
        """INPUT ["prompt" ;|,] target [, target]..."""
        self.advance()
        prompt = ''

        if self.check(TT.STRING) and self.peek(1).type in (TT.SEMI, TT.COMMA):
            prompt = self.advance().value
            self.advance()

        targets = self.parse_lvalue_list()
        return Tree('input', [Token('PROMPT', prompt), Tree('targets', targets)])

    def parse_assignment(self) -> Tree:
        target = self.parse_lvalue()
        self.expect(TT.EQ, "Expected '=' in assignment")
        value = self.parse_expr()
        return Tree('let', [target, value])

    def parse_if_stmt(self) -> List[Tree]:
        """
        IF cond THEN body [ELSE body] / IF cond GOTO n [ELSE body]

        Lowered to:
            ifjump(cond, len(then) [+1 when ELSE present])
            <then instructions>
            skip(len(else))        -- only with ELSE
            <else instructions>
        """
        self.expect(TT.IF)
        cond = self.parse_expr()

        if self.match(TT.THEN):
            then_body = self.parse_branch()
        elif self.match(TT.GOTO):
            then_body = [Tree('goto', [self.parse_line_number()])]
            then_body.extend(self.parse_statement_sequence())
        else:
            raise ParseError("Expected THEN or GOTO", self.current)

        else_body: Optional[List[Tree]] = None
        if self.match(TT.ELSE):
            else_body = self.parse_branch()

        offset = len(then_body) + (1 if else_body is not None else 0)
        out = [Tree('ifjump', [cond, Token('OFFSET', str(offset))])]
        out.extend(then_body)

        if else_body is not None:
            out.append(Tree('skip', [Token('OFFSET', str(len(else_body)))]))
            out.extend(else_body)

        return out

    def parse_branch(self) -> List[Tree]:
        """Branch body: a bare line number is shorthand for GOTO"""
        if self.check(TT.NUMBER):
            body = [Tree('goto', [self.parse_line_number()])]
            body.extend(self.parse_statement_sequence())
            return body
        return self.parse_statement_sequence()

    def parse_for_stmt(self) -> Tree:
        """FOR var = start TO limit [STEP step]"""
        self.expect(TT.FOR)
        name = self.expect(TT.IDENT, "Expected loop variable")
        self.expect(TT.EQ, "Expected '=' after loop variable")
        start = self.parse_expr()
        self.expect(TT.TO, "Expected TO")
        limit = self.parse_expr()

        step: Tree | Token = Token('NUMBER', '1')
        if self.match(TT.STEP):
            step = self.parse_expr()

        return Tree('for', [Token('IDENT', name.value), start, limit, step])

    def parse_next_stmt(self) -> Tree:
        self.expect(TT.NEXT)
        names = []

        if not self.at_statement_end():
            names.append(Token('IDENT', self.expect(TT.IDENT).value))
            while self.match(TT.COMMA):
                names.append(Token('IDENT', self.expect(TT.IDENT).value))

        return Tree('next', names)

    def parse_on_stmt(self) -> Tree:
        """ON expr GOTO|GOSUB n1, n2, ..."""
        self.expect(TT.ON)
        selector = self.parse_expr()

        if not self.check(TT.GOTO, TT.GOSUB):
            raise ParseError("Expected GOTO or GOSUB after ON", self.current)
        kind = self.advance()

        targets = [self.parse_line_number()]
        while self.match(TT.COMMA):
            targets.append(self.parse_line_number())

        return Tree('ongo', [selector, Token(kind.type.name, kind.value), *targets])

    def parse_dim_stmt(self) -> Tree:
        """DIM A(n[,m...]) [, B$(k) ...]"""
        self.expect(TT.DIM)
        decls = []

        while True:
            name = self.expect(TT.IDENT, "Expected array name")
            self.expect(TT.LPAR, "Expected '(' after array name")
            bounds = self.parse_arg_list()
            decls.append(Tree('decl', [Token('IDENT', name.value), *bounds]))
            if not self.match(TT.COMMA):
                break

        return Tree('dim', decls)

    def parse_deffn_stmt(self) -> Tree:
        """
        DEF FN name[(p1, p2, ...)] = body

        The body is kept both parsed and as source text; the text is what a
        snapshot stores.
        """
        self.expect(TT.DEF)
        self.expect(TT.FN, "Expected FN after DEF")
        name = self.expect(TT.IDENT, "Expected function name")

        params = []
        if self.match(TT.LPAR):
            if not self.check(TT.RPAR):
                params.append(Token('IDENT', self.expect(TT.IDENT, "Expected parameter name").value))
                while self.match(TT.COMMA):
                    params.append(Token('IDENT', self.expect(TT.IDENT, "Expected parameter name").value))
            self.expect(TT.RPAR, "Expected ')' after parameters")

        self.expect(TT.EQ, "Expected '=' in DEF FN")
        body_start = self.current.column
        body = self.parse_expr()
        body_end = self.current.column if self.current.type != TT.EOF else len(self.source) + 1
        body_text = self.source[body_start - 1:body_end - 1].strip()

        return Tree('deffn', [
            Token('IDENT', name.value),
            Tree('params', params),
            Token('BODY', body_text),
            body,
        ])

    def parse_snapshot_stmt(self) -> Tree:
        """SAVEF "name" / LOADF "name"[,CLEAR]"""
        kind = self.advance()
        name = self.expect(TT.STRING, f"Expected quoted name after {kind.value}")
        children = [Token('NAME', name.value)]

        if kind.type == TT.LOADF and self.match(TT.COMMA):
            self.expect(TT.CLEAR, "Expected CLEAR after ','")
            children.append(Token('FLAG', 'CLEAR'))

        return Tree(kind.type.name.lower(), children)

    def parse_program_file_stmt(self) -> Tree:
        """CLOAD "name" / SAVE "name" (the quotes are optional for plain names)"""
        kind = self.advance()
        if self.check(TT.STRING, TT.IDENT):
            name = self.advance().value
        else:
            raise ParseError(f"Expected file name after {kind.value}", self.current)
        return Tree(kind.type.name.lower(), [Token('NAME', name)])

    # ========================================================================
    # Statement Pieces
    # ========================================================================

    def parse_line_number(self) -> Token:
        tok = self.expect(TT.NUMBER, "Expected line number")
        if not tok.value.isdigit():
            raise ParseError("Line number must be an integer", tok)
        return Token('LINENO', tok.value)

    def parse_lvalue(self) -> Tree | Token:
        """Variable or array element that can be assigned"""
        name = self.expect(TT.IDENT, "Expected variable")
        if name.value in BUILTIN_FUNCTIONS:
            raise ParseError(f"Cannot assign to function {name.value}", name)

        if self.match(TT.LPAR):
            return Tree('index', [Token('IDENT', name.value), *self.parse_arg_list()])
        return Token('IDENT', name.value)

    def parse_lvalue_list(self) -> List[Tree | Token]:
        targets = [self.parse_lvalue()]
        while self.match(TT.COMMA):
            targets.append(self.parse_lvalue())
        return targets

    def parse_arg_list(self) -> List[Tree | Token]:
        """Comma separated expressions up to ')' (opening paren already consumed)"""
        args = [self.parse_expr()]
        while self.match(TT.COMMA):
            args.append(self.parse_expr())
        self.expect(TT.RPAR, "Expected ')'")
        return args

    # ========================================================================
    # Expressions
    # ========================================================================

    def parse_expr(self) -> Tree | Token:
        return self.parse_imp_expr()

    def _parse_bitwise(self, op_type: TT, operand) -> Tree | Token:
        left = operand()

        while self.check(op_type):
            op = self.advance()
            right = operand()
            op_tree = Tree('bitop', [Token(op.type.name, op.value)])
            left = Tree('bitexpr', [left, op_tree, right])

        return left

    def parse_imp_expr(self) -> Tree | Token:
        return self._parse_bitwise(TT.IMP, self.parse_eqv_expr)

    def parse_eqv_expr(self) -> Tree | Token:
        return self._parse_bitwise(TT.EQV, self.parse_xor_expr)

    def parse_xor_expr(self) -> Tree | Token:
        return self._parse_bitwise(TT.XOR, self.parse_or_expr)

    def parse_or_expr(self) -> Tree | Token:
        return self._parse_bitwise(TT.OR, self.parse_and_expr)

    def parse_and_expr(self) -> Tree | Token:
        return self._parse_bitwise(TT.AND, self.parse_not_expr)

    def parse_not_expr(self) -> Tree | Token:
        if self.match(TT.NOT):
            return Tree('notexpr', [self.parse_not_expr()])
        return self.parse_compare_expr()

    def parse_compare_expr(self) -> Tree | Token:
        """Relational operators; both `<>` and `><` normalize to NEQ"""
        left = self.parse_add_expr()

        while self.check(TT.EQ, TT.NEQ, TT.LT, TT.LTE, TT.GT, TT.GTE):
            op = self.advance()
            right = self.parse_add_expr()
            op_tree = Tree('cmpop', [Token(op.type.name, op.value)])
            left = Tree('compare', [left, op_tree, right])

        return left

    def parse_add_expr(self) -> Tree | Token:
        """Parse addition/subtraction: expr + expr"""
        left = self.parse_mod_expr()

        ops_and_operands = []
        while self.check(TT.PLUS, TT.MINUS):
            op = self.advance()
            right = self.parse_mod_expr()
            ops_and_operands.append((op, right))

        if not ops_and_operands:
            return left

        for op, right in ops_and_operands:
            op_tree = Tree('addop', [Token(op.type.name, op.value)])
            left = Tree('addexpr', [left, op_tree, right])

        return left

    def parse_mod_expr(self) -> Tree | Token:
        left = self.parse_idiv_expr()

        while self.check(TT.MOD, TT.PERCENT):
            self.advance()
            right = self.parse_idiv_expr()
            left = Tree('modexpr', [left, right])

        return left

    def parse_idiv_expr(self) -> Tree | Token:
        left = self.parse_mul_expr()

        while self.match(TT.BACKSLASH):
            right = self.parse_mul_expr()
            left = Tree('idivexpr', [left, right])

        return left

    def parse_mul_expr(self) -> Tree | Token:
        """Parse multiplication/division: expr * expr"""
        left = self.parse_unary_expr()

        ops_and_operands = []
        while self.check(TT.STAR, TT.SLASH):
            op = self.advance()
            right = self.parse_unary_expr()
            ops_and_operands.append((op, right))

        if not ops_and_operands:
            return left

        for op, right in ops_and_operands:
            op_tree = Tree('mulop', [Token(op.type.name, op.value)])
            left = Tree('mulexpr', [left, op_tree, right])

        return left

    def parse_unary_expr(self) -> Tree | Token:
        """Unary sign binds looser than ^, so -2^2 is -(2^2)"""
        if self.check(TT.MINUS, TT.PLUS):
            op = self.advance()
            return Tree('unary', [Token(op.type.name, op.value), self.parse_unary_expr()])
        return self.parse_pow_expr()

    def parse_pow_expr(self) -> Tree | Token:
        """Parse exponentiation: expr ^ expr (left associative, 2^3^2 = 64)"""
        left = self.parse_primary_expr()

        while self.match(TT.CARET):
            if self.check(TT.MINUS, TT.PLUS):
                op = self.advance()
                right = Tree('unary', [Token(op.type.name, op.value), self.parse_primary_expr()])
            else:
                right = self.parse_primary_expr()
            left = Tree('powexpr', [left, right])

        return left

    def parse_primary_expr(self) -> Tree | Token:
        tok = self.current

        if tok.type in (TT.NUMBER, TT.RADIX, TT.STRING):
            self.advance()
            return Token(tok.type.name, tok.value)

        if self.match(TT.LPAR):
            expr = self.parse_expr()
            self.expect(TT.RPAR, "Expected ')'")
            return expr

        if self.match(TT.FN):
            name = self.expect(TT.IDENT, "Expected function name after FN")
            args = self.parse_arg_list() if self.match(TT.LPAR) else []
            return Tree('fncall', [Token('IDENT', name.value), *args])

        if tok.type == TT.IDENT:
            self.advance()
            if tok.value in BUILTIN_FUNCTIONS:
                self.expect(TT.LPAR, f"Expected '(' after {tok.value}")
                return Tree('call', [Token('NAME', tok.value), *self.parse_arg_list()])
            if self.match(TT.LPAR):
                return Tree('index', [Token('IDENT', tok.value), *self.parse_arg_list()])
            return Token('IDENT', tok.value)

        raise ParseError("Expected expression", tok)


# ============================================================================
# Entry Points
# ============================================================================

def parse_expression(source: str) -> Tree | Token:
    """
    Parse a standalone expression.
    Used by DEF FN bodies restored from a snapshot and by READ.
    """
    tokens = tokenize(source)
    parser = Parser(tokens, source=source)
    expr = parser.parse_expr()

    if not parser.check(TT.EOF):
        raise ParseError("Unexpected tokens after expression", parser.current)
    return expr


def parse_statement(source: str) -> List[Tree]:
    """
    Parse one `:`-free statement (IF may carry its own `:`) into instructions.

    DATA is taken verbatim: its items are raw text, split when the data
    pool is built, not BASIC tokens.
    """
    text = source.strip()
    if starts_with_word(text, "DATA"):
        return [Tree('data', [Token('RAW', text[4:].strip())])]

    tokens = tokenize(text)
    parser = Parser(tokens, source=text)
    stmts = parser.parse_statement()

    if not parser.check(TT.EOF):
        raise ParseError("Unexpected tokens after statement", parser.current)
    return stmts


def compile_line(source: str) -> List[Tree]:
    """
    Compile a line's text into its flat instruction list.

    A statement that fails to lex or parse becomes a `badstmt` instruction,
    reported as a syntax error only if it is executed.
    """
    out: List[Tree] = []

    for stmt in split_statements(strip_inline_comment(source)):
        try:
            out.extend(parse_statement(stmt))
        except (ParseError, LexError) as exc:
            log.debug("syntax error in %r: %s", stmt, exc)
            out.append(Tree('badstmt', [Token('TEXT', stmt), Token('REASON', str(exc))]))

    return out
