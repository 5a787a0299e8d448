ZKC_GRAMMAR = r"""
    start: _declaration*

    _declaration: import_decl | const_decl | struct_decl | function_decl

    // --- Declarations ---
    import_decl: "from" STRING "import" import_list ";"            -> from_import
               | "import" STRING "import" import_list ";"          -> from_import
               | "import" STRING ("as" NAME)? ";"                  -> main_import
    import_list: import_item ("," import_item)*
    import_item: NAME ("as" NAME)?

    const_decl: "const" type NAME "=" expr ";"

    struct_decl: "struct" NAME "{" struct_field* "}"
    struct_field: type NAME ";"

    function_decl: "def" NAME generic_params? "(" params? ")" returns? block
    generic_params: "<" NAME ("," NAME)* ">"
    params: param ("," param)*
    param: visibility? type NAME
    visibility: "private" -> private
              | "public"  -> public
    returns: "->" type                          -> single_return
           | "->" "(" (type ("," type)*)? ")"   -> tuple_return

    // --- Types ---
    type: base_type array_dim*
    array_dim: "[" expr "]"
    ?base_type: prim_type
              | NAME -> named_type
    prim_type: "field" -> field_type
             | "bool"  -> bool_type
             | "u8"    -> u8_type
             | "u16"   -> u16_type
             | "u32"   -> u32_type
             | "u64"   -> u64_type

    // --- Statements ---
    block: "{" _statement* "}"
    _statement: definition
              | call_stmt
              | assertion
              | for_loop
              | return_stmt

    definition: lhs_item ("," lhs_item)* "=" expr ";"
    lhs_item: prim_type array_dim* NAME   -> typed_prim
            | NAME selector* NAME?         -> lhs_named
    selector: "[" expr "]"                 -> index_sel
            | "." NAME                     -> member_sel

    call_stmt: call ";"
    assertion: "assert" "(" expr ("," STRING)? ")" ";"
    for_loop: "for" type NAME "in" bound ".." bound block
    return_stmt: "return" (expr ("," expr)*)? ";"

    // Loop bounds and explicit generic arguments exclude comparisons and
    // struct literals so that the following "{" or ">" stays unambiguous.
    ?bound: bound_term
          | bound "+" bound_term -> add
          | bound "-" bound_term -> sub
    ?bound_term: bound_atom
               | bound_term "*" bound_atom -> mul
    ?bound_atom: number
               | NAME -> var
               | call
               | "(" expr ")"

    // --- Expressions ---
    ?expr: ternary
    ?ternary: or_expr
            | or_expr "?" expr ":" expr -> ternary
    ?or_expr: and_expr
            | or_expr "||" and_expr -> or_
    ?and_expr: cmp_expr
             | and_expr "&&" cmp_expr -> and_
    ?cmp_expr: bitor_expr
             | bitor_expr "==" bitor_expr -> eq
             | bitor_expr "!=" bitor_expr -> ne
             | bitor_expr "<" bitor_expr  -> lt
             | bitor_expr "<=" bitor_expr -> le
             | bitor_expr ">" bitor_expr  -> gt
             | bitor_expr ">=" bitor_expr -> ge
    ?bitor_expr: bitxor_expr
               | bitor_expr "|" bitxor_expr -> bitor
    ?bitxor_expr: bitand_expr
                | bitxor_expr "^" bitand_expr -> bitxor
    ?bitand_expr: shift_expr
                | bitand_expr "&" shift_expr -> bitand
    ?shift_expr: sum_expr
               | shift_expr "<<" sum_expr -> shl
               | shift_expr ">>" sum_expr -> shr
    ?sum_expr: product
             | sum_expr "+" product -> add
             | sum_expr "-" product -> sub
    ?product: power
            | product "*" power -> mul
            | product "/" power -> div
            | product "%" power -> rem
    ?power: unary
          | unary "**" power -> pow
    ?unary: postfix
          | "-" unary -> neg
          | "!" unary -> not_
    ?postfix: atom
            | postfix "[" expr "]" -> index
            | postfix "." NAME     -> member
    ?atom: number
         | "true"  -> true
         | "false" -> false
         | NAME    -> var
         | call
         | "(" expr ")"
         | "[" (expr ("," expr)*)? "]"                           -> array_lit
         | "[" expr ";" expr "]"                                 -> array_repeat
         | NAME "{" (field_init ("," field_init)* ","?)? "}"     -> struct_lit
    field_init: NAME ":" expr

    call: NAME generic_args? "(" args? ")"
    generic_args: "::" "<" bound ("," bound)* ">"
    args: expr ("," expr)*

    number: NUMBER

    NAME: /[a-zA-Z_]\w*/
    STRING: /"[^"\n]*"/
    NUMBER: /0x[0-9a-fA-F]+|[0-9]+(?:u8|u16|u32|u64|f)?/

    %import common.WS
    %ignore WS
    %ignore /\/\/[^\n]*/
    %ignore /\/\*(?:.|\n)*?\*\//
"""
