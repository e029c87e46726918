# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db armazem.db
  python app.py params show
  python app.py itens importar itens.xlsx
  python app.py mov registrar LGS-2025-0001-X7K ENTRADA 10
  python app.py venda confirmar --cliente C-1001 --item LGS-2025-0001-X7K:2 --pagamento PIX
  python app.py rel gestao-dia
"""

from armazem.adapters.cli import main

if __name__ == "__main__":
    main()
