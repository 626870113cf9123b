# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db scges.db
  python app.py produto add --descricao "Caneta Azul" --unidade UN
  python app.py entrada --produto "Caneta Azul" --quantidade 10 --servidor Ana
  python app.py saida --codigo 001 --quantidade 3 --servidor Ana --setor TI
  python app.py entrada-lotes entradas.xlsx
  python app.py saida-lotes saidas.xlsx
  python app.py dashboard
"""

from scges.adapters.cli import main

if __name__ == "__main__":
    main()
