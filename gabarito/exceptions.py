"""Erros do motor de correção e reconciliação.

Cada tipo carrega uma mensagem pronta para ser exibida ao usuário; os
endpoints traduzem o tipo para o status HTTP correspondente.
"""


class ErroGabarito(Exception):
    """Base para todos os erros do motor."""

    mensagem = "Erro no processamento do gabarito"

    def __init__(self, mensagem=None):
        super().__init__(mensagem or self.mensagem)
        self.mensagem = mensagem or self.mensagem


class ProvaNaoEncontrada(ErroGabarito):
    mensagem = "Prova não encontrada"

    def __init__(self, id_prova):
        super().__init__(f"Prova {id_prova} não encontrada")
        self.id_prova = id_prova


class GabaritoMalformado(ErroGabarito):
    mensagem = "Gabarito inválido"


class LeituraNaoEncontrada(ErroGabarito):
    mensagem = "Leitura não encontrada"

    def __init__(self, id_leitura):
        super().__init__(f"Leitura {id_leitura} não encontrada ou sem permissão")
        self.id_leitura = id_leitura


class AlteracaoVazia(ErroGabarito):
    mensagem = "Nenhum campo válido fornecido para atualização"


class CorridaReconciliacaoPerdida(ErroGabarito):
    """A criação da cópia do participante falhou mesmo após a releitura."""

    mensagem = "Falha ao reconciliar o participante da leitura"


class ParticipanteNaoEncontrado(ErroGabarito):
    mensagem = "Participante não encontrado"

    def __init__(self, id_participante):
        super().__init__(f"Participante {id_participante} não encontrado")
        self.id_participante = id_participante
