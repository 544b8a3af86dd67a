from gabarito.config import settings
from testes.conftest import CONTA_A, CONTA_B


def _cabecalho(conta_id):
    return {"X-Conta-Id": str(conta_id)}


def _criar_prova(client, gabarito="abcde", peso_questao=0.5):
    response = client.post("/provas/", json={"gabarito": gabarito, "peso_questao": peso_questao})
    assert response.status_code == 201, response.text
    return response.json()


def _criar_participante(client, conta_id, nome="João Silva", escola="Escola Alpha"):
    response = client.post("/participantes/", json={"nome": nome, "escola": escola}, headers=_cabecalho(conta_id))
    assert response.status_code == 201, response.text
    return response.json()


def _registrar(client, conta_id, arquivo="0001.png", **resultado):
    return client.post("/leituras/", json={"arquivo": arquivo, "resultado": resultado}, headers=_cabecalho(conta_id))


def teste_root(client):
    assert client.get("/").json()["status"] == "online"


def teste_conta_obrigatoria(client):
    assert client.get("/leituras/").status_code == 422


def teste_gabarito_da_prova_invalido(client):
    response = client.post("/provas/", json={"gabarito": "abcz", "peso_questao": 0.5})
    assert response.status_code == 422


def teste_ingestao_e_correcao(client):
    prova = _criar_prova(client)
    participante = _criar_participante(client, CONTA_A)

    response = _registrar(
        client, CONTA_A, erro=0, id_prova=prova["id"], id_participante=participante["id"], leitura="aaaaa"
    )
    assert response.status_code == 201, response.text
    leitura = response.json()["leitura"]
    assert (leitura["acertos"], leitura["nota"]) == (1, 0.5)
    assert leitura["participante"] == {"nome": "João Silva", "escola": "Escola Alpha"}

    # A nota enviada pelo cliente é descartada e recalculada
    response = client.put(
        f"/leituras/{leitura['id']}", json={"gabarito": "abcde", "nota": 99}, headers=_cabecalho(CONTA_A)
    )
    assert response.status_code == 200, response.text
    assert (response.json()["acertos"], response.json()["nota"]) == (5, 2.5)

    desempenho = client.get(f"/leituras/{leitura['id']}/desempenho", headers=_cabecalho(CONTA_A)).json()
    assert desempenho["acertos"] == 5
    assert desempenho["total_questoes"] == 5
    assert all(q["correto"] for q in desempenho["detalhe_por_questao"])


def teste_ingestao_entre_contas_mostra_participante_original(client):
    prova = _criar_prova(client)
    original = _criar_participante(client, CONTA_A, "Maria Santos", "Escola Beta")

    response = _registrar(
        client, CONTA_B, erro=0, id_prova=prova["id"], id_participante=original["id"], leitura="abXde"
    )

    assert response.status_code == 201, response.text
    corpo = response.json()
    assert corpo["participante_original"] == {"nome": "Maria Santos", "escola": "Escola Beta"}
    assert corpo["leitura"]["id_participante"] != original["id"]
    assert (corpo["leitura"]["acertos"], corpo["leitura"]["nota"]) == (4, 2.0)

    participantes_b = client.get("/participantes/", headers=_cabecalho(CONTA_B)).json()
    assert [p["id"] for p in participantes_b] == [corpo["leitura"]["id_participante"]]
    # A conta B não enxerga o registro original da conta A
    assert client.get(f"/participantes/{original['id']}", headers=_cabecalho(CONTA_B)).status_code == 404


def teste_prova_inexistente_rejeita_leitura(client):
    response = _registrar(client, CONTA_A, erro=0, id_prova=99, id_participante=-1, leitura="abcde")

    assert response.status_code == 404
    assert client.get("/leituras/", headers=_cabecalho(CONTA_A)).json() == []


def teste_leitura_sem_participante_listada_para_quem_criou(client):
    response = _registrar(client, CONTA_A, "0005.png", erro=1, id_prova=-1, id_participante=-1, leitura="X-dd-")

    assert response.status_code == 201
    assert response.json()["aviso"] == "Erro de leitura do código Aztec"
    id_leitura = response.json()["leitura"]["id"]
    assert [l["id"] for l in client.get("/leituras/", headers=_cabecalho(CONTA_A)).json()] == [id_leitura]
    assert client.get("/leituras/", headers=_cabecalho(CONTA_B)).json() == []
    assert client.get(f"/leituras/{id_leitura}", headers=_cabecalho(CONTA_B)).status_code == 404


def teste_correcao_sem_campos(client):
    id_leitura = _registrar(client, CONTA_A, erro=3).json()["leitura"]["id"]

    response = client.put(f"/leituras/{id_leitura}", json={}, headers=_cabecalho(CONTA_A))

    assert response.status_code == 400


def teste_correcao_com_gabarito_malformado(client):
    prova = _criar_prova(client)
    id_leitura = _registrar(client, CONTA_A, erro=0, id_prova=prova["id"], leitura="aaaaa").json()["leitura"]["id"]

    response = client.put(f"/leituras/{id_leitura}", json={"gabarito": "abc"}, headers=_cabecalho(CONTA_A))

    assert response.status_code == 422
    assert client.get(f"/leituras/{id_leitura}", headers=_cabecalho(CONTA_A)).json()["gabarito"] == "aaaaa"


def teste_remocao(client):
    id_leitura = _registrar(client, CONTA_A, erro=3).json()["leitura"]["id"]

    assert client.delete(f"/leituras/{id_leitura}", headers=_cabecalho(CONTA_B)).status_code == 404
    assert client.delete(f"/leituras/{id_leitura}", headers=_cabecalho(CONTA_A)).status_code == 200
    assert client.delete(f"/leituras/{id_leitura}", headers=_cabecalho(CONTA_A)).status_code == 404


def teste_processar_pelo_leitor(client):
    prova = _criar_prova(client)
    _criar_participante(client, CONTA_A)

    response = client.post("/leituras/processar", json={"caminho_imagem": "/uploads/0001.png"}, headers=_cabecalho(CONTA_A))

    assert response.status_code == 201, response.text
    leitura = response.json()["leitura"]
    assert leitura["arquivo"] == "/uploads/0001.png"
    assert leitura["id_prova"] == prova["id"]
    assert (leitura["acertos"], leitura["nota"]) == (4, 2.0)


def teste_processar_multiplas_reporta_falhas_por_imagem(client):
    _criar_prova(client)
    _criar_participante(client, CONTA_A)

    response = client.post(
        "/leituras/processar-multiplas",
        json={"caminhos_imagens": ["0001.png", "0099.png", "desconhecida.png"]},
        headers=_cabecalho(CONTA_A),
    )

    assert response.status_code == 200, response.text
    corpo = response.json()
    assert (corpo["total"], corpo["processados"]) == (3, 3)
    ok, rejeitada, fatal = corpo["resultados"]
    assert ok["leitura"]["acertos"] == 4
    assert rejeitada["leitura"] is None
    assert rejeitada["erro"] == "Prova 99 não encontrada"
    assert fatal["leitura"]["erro"] == 3
    assert fatal["aviso"] == "Erro fatal durante a leitura"


def teste_estatisticas(client):
    prova = _criar_prova(client)
    _registrar(client, CONTA_A, erro=0, id_prova=prova["id"], leitura="abcde")
    _registrar(client, CONTA_A, erro=2, id_prova=prova["id"], leitura="aaaaa")

    stats = client.get("/leituras/estatisticas", headers=_cabecalho(CONTA_A)).json()

    assert stats["total_leituras"] == 2
    assert stats["leituras_sucesso"] == 1
    assert stats["nota_maxima"] == 2.5
    assert stats["taxa_sucesso"] == 50.0


def teste_prova_sem_peso_usa_padrao_configurado(client, monkeypatch):
    monkeypatch.setattr(settings, "PESO_QUESTAO_PADRAO", 1.0)

    response = client.post("/provas/", json={"gabarito": "abcde"})
    assert response.status_code == 201, response.text
    prova = response.json()

    assert prova["peso_questao"] == 1.0
    leitura = _registrar(client, CONTA_A, erro=0, id_prova=prova["id"], leitura="abcaa").json()["leitura"]
    assert (leitura["acertos"], leitura["nota"]) == (3, 3.0)


def teste_cadastro_duplicado_na_mesma_conta(client):
    _criar_participante(client, CONTA_A)

    response = client.post(
        "/participantes/", json={"nome": "João Silva", "escola": "Escola Alpha"}, headers=_cabecalho(CONTA_A)
    )

    assert response.status_code == 409
    # Outra conta pode cadastrar o mesmo aluno
    assert _criar_participante(client, CONTA_B)["user_id"] == CONTA_B


def teste_atualizacao_de_participante(client):
    participante = _criar_participante(client, CONTA_A)
    url = f"/participantes/{participante['id']}"

    response = client.put(url, json={"escola": " Escola Beta "}, headers=_cabecalho(CONTA_A))

    assert response.status_code == 200, response.text
    assert (response.json()["nome"], response.json()["escola"]) == ("João Silva", "Escola Beta")
    assert client.put(url, json={}, headers=_cabecalho(CONTA_A)).status_code == 400
    assert client.put(url, json={"nome": "Outro Nome"}, headers=_cabecalho(CONTA_B)).status_code == 404


def teste_atualizacao_que_colide_com_outro_participante(client):
    _criar_participante(client, CONTA_A, "Maria Santos", "Escola Beta")
    participante = _criar_participante(client, CONTA_A, "Maria Souza", "Escola Beta")

    response = client.put(
        f"/participantes/{participante['id']}", json={"nome": "Maria Santos"}, headers=_cabecalho(CONTA_A)
    )

    assert response.status_code == 409
    atual = client.get(f"/participantes/{participante['id']}", headers=_cabecalho(CONTA_A)).json()
    assert atual["nome"] == "Maria Souza"


def teste_remocao_de_participante_mantem_leituras(client):
    prova = _criar_prova(client)
    participante = _criar_participante(client, CONTA_A)
    leitura = _registrar(
        client, CONTA_A, erro=0, id_prova=prova["id"], id_participante=participante["id"], leitura="abcde"
    ).json()["leitura"]

    assert client.delete(f"/participantes/{participante['id']}", headers=_cabecalho(CONTA_B)).status_code == 404
    response = client.delete(f"/participantes/{participante['id']}", headers=_cabecalho(CONTA_A))

    assert response.status_code == 200
    assert client.get(f"/participantes/{participante['id']}", headers=_cabecalho(CONTA_A)).status_code == 404
    orfa = client.get(f"/leituras/{leitura['id']}", headers=_cabecalho(CONTA_A)).json()
    assert orfa["id_participante"] is None
    assert (orfa["acertos"], orfa["nota"]) == (5, 2.5)
    assert client.get(f"/leituras/{leitura['id']}", headers=_cabecalho(CONTA_B)).status_code == 404


def teste_processar_folha_de_calibracao(client):
    response = client.post("/leituras/processar", json={"caminho_imagem": "/uploads/base.png"}, headers=_cabecalho(CONTA_A))

    assert response.status_code == 201, response.text
    leitura = response.json()["leitura"]
    assert leitura["erro"] == 0
    assert (leitura["id_prova"], leitura["id_participante"]) == (None, None)
    assert leitura["gabarito"] == "-" * 20
    assert leitura["nota"] == 0.0
